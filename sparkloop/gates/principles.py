"""
Principle gate - does the intended action hold up against the agent's principles?

Four named checks: truth, value, mirror (self-consistency) and wonder
(genuine interest). One failed check vetoes the action.
"""

from __future__ import annotations

import logging

from ..emotions.state import prompt_modifier
from ..llm.client import LLMClient
from ..llm.decoding import decode_response
from ..llm.prompts import PromptTemplates, relationship_context
from ..models.reviews import PrincipleReview
from .base import Gate, GateContext, Verdict

logger = logging.getLogger(__name__)


class PrincipleGate(Gate):
    """Stage B: principle review of intent."""

    name = "principles"

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def evaluate(self, context: GateContext) -> Verdict:
        decision = context.decision
        prompt = PromptTemplates.principle_review(
            action=decision.decision_type.value.replace("_", " "),
            stimulus_text=context.stimulus_text,
            context={
                "mood": prompt_modifier(context.agent),
                "spark": context.spark,
                "topic": context.topic,
                "relationship": relationship_context(context.relationship),
            },
        )
        response = await self.llm.complete(prompt, system=PromptTemplates.SYSTEM_CONTEXT)
        review = decode_response(response, PrincipleReview)

        failed = review.failed_checks()
        if failed or not review.approved:
            failed_gate = review.failed_gate or (failed[0] if failed else "approval")
            return Verdict.reject(
                self.name,
                review.message or f"failed the {failed_gate} check",
                guidance=review.guidance,
            )

        return Verdict.approve(self.name, review.message or "all principles passed")
