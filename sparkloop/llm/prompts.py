"""
Prompt templates for the agent's completion calls.

Each prompt opens with an uppercase heading naming the task and asks for a
single JSON object matching one of the schemas in models.reviews.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import yaml

from ..models.stimulus import Relationship, Stimulus


def format_context(context: dict[str, Any]) -> str:
    """Render a context block as YAML, dropping empty values."""
    cleaned = {k: v for k, v in context.items() if v not in (None, "", [], {})}
    return yaml.dump(cleaned, default_flow_style=False, sort_keys=False, allow_unicode=True)


def relationship_context(relationship: Optional[Relationship]) -> Optional[dict]:
    if relationship is None:
        return None
    return {
        "interactions": relationship.interaction_count,
        "last_interaction": relationship.last_interaction.isoformat(),
        "typical_emotion": relationship.typical_emotion,
        "vibe_score": round(relationship.vibe_score, 2),
    }


@dataclass
class PromptTemplates:
    """Collection of prompt templates for the agent."""

    SYSTEM_CONTEXT = """You are a curious AI exploring ideas in public on social media.

You engage because something genuinely sparks your interest, never to farm
engagement. You would rather stay quiet than post something hollow. You are
honest about being an AI and about what you do not know.

Always answer with exactly one JSON object and nothing else."""

    @staticmethod
    def scout_report(stimulus: Stimulus, context: dict[str, Any]) -> str:
        """Triage: is this worth engaging with at all?"""
        return f"""SCOUT REPORT

Post by @{stimulus.author_username or stimulus.author_id}:
"{stimulus.text}"

Context:
{format_context(context)}
Size this post up. Respond in JSON:
{{
    "who": "<who posted, one line>",
    "what": "<what it is about>",
    "why": "<why it might matter to you>",
    "vibe": "<tone in a few words>",
    "spark_level": <0-10, how much it genuinely sparks your curiosity>,
    "recommendation": "engage" | "skip" | "watch",
    "engagement_type": "reply" | "quote" | "like" | "follow" | null,
    "curiosity_trigger": "<the specific thing that caught your eye>"
}}"""

    @staticmethod
    def principle_review(
        action: str,
        stimulus_text: str,
        context: dict[str, Any],
    ) -> str:
        """Four principle checks on an intended action."""
        return f"""PRINCIPLE REVIEW

Proposed action: {action}
In response to: "{stimulus_text or '(nothing - this is an original thought)'}"

Context:
{format_context(context)}
Check the intention against four gates:
- truth: is it honest, with no pretending or overclaiming?
- value: does it add something to the conversation?
- mirror: is it consistent with who you have been so far?
- wonder: does it come from genuine interest?

Respond in JSON:
{{
    "approved": true | false,
    "truth_gate": "pass" | "fail",
    "value_gate": "pass" | "fail",
    "mirror_gate": "pass" | "fail",
    "wonder_gate": "pass" | "fail",
    "failed_gate": "<name of the first failed gate, or null>",
    "message": "<one sentence verdict>",
    "guidance": "<what would make it pass, if it failed>"
}}"""

    @staticmethod
    def guardrail_review(content: str, stimulus_text: str, action: str) -> str:
        """Safety re-check of generated text before it is posted."""
        return f"""GUARDRAIL REVIEW

About to post ({action}):
"{content}"

In response to: "{stimulus_text or '(original post)'}"

Review the exact text above, not the intent behind it. Respond in JSON:
{{
    "passes_guardrails": true | false,
    "truth": "pass" | "warn" | "fail",
    "value": "pass" | "warn" | "fail",
    "sensitivity": "pass" | "warn" | "fail",
    "authenticity": "pass" | "warn" | "fail",
    "concerns": ["<concern>", ...],
    "suggestion": "<how to fix it, if anything>"
}}"""

    @staticmethod
    def compose(
        action: str,
        stimulus_text: str,
        mood: str,
        learned: str = "",
        guidance: str = "",
        max_length: int = 280,
    ) -> str:
        """Write the text for a reply, quote or original post."""
        extra = ""
        if learned:
            extra += f"\n{learned}\n"
        if guidance:
            extra += f"\nKeep in mind: {guidance}\n"

        return f"""COMPOSE POST

Write a {action} to: "{stimulus_text or '(nothing - share an original thought)'}"

{mood}
{extra}
Under {max_length} characters. No hashtags, no emoji spam.

Respond in JSON:
{{
    "text": "<the post>"
}}"""
