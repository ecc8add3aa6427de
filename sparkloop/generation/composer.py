"""
Content generation for replies, quotes and original posts.

Text quality is the completion model's business; this module only builds
the prompt, decodes the answer and enforces the length limit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..emotions.state import prompt_modifier
from ..learning.patterns import PatternAggregator
from ..llm.client import LLMClient
from ..llm.decoding import decode_response
from ..llm.prompts import PromptTemplates
from ..models.decision import Decision
from ..models.emotion import AgentContext
from ..models.reviews import ComposedPost
from ..models.stimulus import Stimulus

logger = logging.getLogger(__name__)

MAX_POST_LENGTH = 280


def trim_to_limit(text: str, limit: int = MAX_POST_LENGTH) -> str:
    """Strip wrapping quotes and cut to the platform limit on a word boundary."""
    text = text.strip().strip('"').strip()
    if len(text) <= limit:
        return text
    cut = text[: limit - 3]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:") + "..."


class ContentGenerator(ABC):
    """Produces the text for a content-bearing decision."""

    @abstractmethod
    async def generate(
        self,
        decision: Decision,
        context: AgentContext,
        stimulus: Optional[Stimulus] = None,
        guidance: str = "",
    ) -> str:
        pass


class LLMContentGenerator(ContentGenerator):
    """Composes posts through the completion capability."""

    def __init__(
        self,
        llm: LLMClient,
        patterns: Optional[PatternAggregator] = None,
        max_length: int = MAX_POST_LENGTH,
    ):
        self.llm = llm
        self.patterns = patterns
        self.max_length = max_length

    async def generate(
        self,
        decision: Decision,
        context: AgentContext,
        stimulus: Optional[Stimulus] = None,
        guidance: str = "",
    ) -> str:
        prompt = PromptTemplates.compose(
            action=decision.decision_type.value.replace("_", " "),
            stimulus_text=stimulus.text if stimulus else "",
            mood=prompt_modifier(context),
            learned=self.patterns.learned_context() if self.patterns else "",
            guidance=guidance,
            max_length=self.max_length,
        )
        response = await self.llm.complete(
            prompt,
            system=PromptTemplates.SYSTEM_CONTEXT,
            temperature=0.8,
        )
        composed = decode_response(response, ComposedPost)
        return trim_to_limit(composed.text, self.max_length)
