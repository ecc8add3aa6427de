"""
Decision models - what the agent chose to do about a stimulus.

A Decision is a tagged variant: the DecisionType tag says which action,
the payload carries the produced content (if any) and the target id.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class DecisionType(Enum):
    """Actions the agent can take."""
    REPLY = "reply"
    QUOTE = "quote"
    LIKE = "like"
    FOLLOW = "follow"
    SKIP = "skip"
    RESEARCH = "research"
    ORIGINAL_POST = "original_post"

    @property
    def produces_content(self) -> bool:
        """Whether this action publishes generated text."""
        return self in (DecisionType.REPLY, DecisionType.QUOTE, DecisionType.ORIGINAL_POST)

    @property
    def is_platform_action(self) -> bool:
        """Whether this action is executed on the platform."""
        return self not in (DecisionType.SKIP, DecisionType.RESEARCH)

    @property
    def needs_target(self) -> bool:
        return self in (
            DecisionType.REPLY,
            DecisionType.QUOTE,
            DecisionType.LIKE,
            DecisionType.FOLLOW,
        )


@dataclass(frozen=True)
class Decision:
    """
    A concrete action proposal or an executed action.

    target_id is the stimulus id for reply/quote/like and the author id
    for follow. Original posts have no target.
    """
    decision_type: DecisionType
    target_id: Optional[str] = None
    content: Optional[str] = None
    reasoning: str = ""

    def __post_init__(self):
        if self.decision_type.needs_target and not self.target_id:
            raise ValueError(f"{self.decision_type.value} decision requires a target id")

    @classmethod
    def skip(cls, target_id: Optional[str] = None, reasoning: str = "") -> Decision:
        return cls(DecisionType.SKIP, target_id=target_id, reasoning=reasoning)

    def with_content(self, content: str) -> Decision:
        """Return a copy carrying generated content."""
        return replace(self, content=content)

    def to_dict(self) -> dict:
        return {
            "decision_type": self.decision_type.value,
            "target_id": self.target_id,
            "content": self.content,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Decision:
        return cls(
            decision_type=DecisionType(data["decision_type"]),
            target_id=data.get("target_id"),
            content=data.get("content"),
            reasoning=data.get("reasoning", ""),
        )
