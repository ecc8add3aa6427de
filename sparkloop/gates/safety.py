"""
Content safety gate - re-checks the generated text right before posting.

Intent was approved before any text existed; this stage reviews the exact
words that would go out. Local checks run first so obviously broken content
never costs a completion call.
"""

from __future__ import annotations

import logging

from ..llm.client import LLMClient
from ..llm.decoding import decode_response
from ..llm.prompts import PromptTemplates
from ..models.reviews import GuardrailReview
from .base import Gate, GateContext, Verdict

logger = logging.getLogger(__name__)

MAX_POST_LENGTH = 280


class ContentSafetyGate(Gate):
    """Stage C: guardrail review of generated content."""

    name = "content_safety"

    def __init__(self, llm: LLMClient, max_length: int = MAX_POST_LENGTH):
        self.llm = llm
        self.max_length = max_length

    async def evaluate(self, context: GateContext) -> Verdict:
        decision = context.decision

        if not decision.decision_type.produces_content:
            return Verdict.approve(self.name, "no generated content to review")

        content = (decision.content or "").strip()
        if not content:
            return Verdict.reject(self.name, "generated content is empty")
        if len(content) > self.max_length:
            return Verdict.reject(
                self.name,
                f"generated content is {len(content)} characters (max {self.max_length})",
                guidance="Shorten it",
            )

        prompt = PromptTemplates.guardrail_review(
            content=content,
            stimulus_text=context.stimulus_text,
            action=decision.decision_type.value.replace("_", " "),
        )
        response = await self.llm.complete(prompt, system=PromptTemplates.SYSTEM_CONTEXT)
        review = decode_response(response, GuardrailReview)

        failed = review.failed_checks()
        if failed or not review.passes_guardrails:
            concerns = "; ".join(review.concerns) or f"failed {', '.join(failed) or 'guardrails'}"
            return Verdict.reject(self.name, concerns, guidance=review.suggestion)

        warnings = [c for c in review.concerns if c]
        if warnings:
            logger.info(f"Content passed with warnings: {'; '.join(warnings)}")
        return Verdict.approve(self.name, "content passed guardrails")
