"""
Learned pattern statistics keyed by (emotional state, decision type).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..clock import parse_timestamp, utcnow
from .decision import DecisionType
from .emotion import EmotionalState

SUCCESS_THRESHOLD = 0.5   # An outcome above this counts as a success
CONTINUE_THRESHOLD = 0.4  # Success rate above this keeps the pattern in play


@dataclass
class Pattern:
    """Running statistics for one (state, decision) pair. Amended, never deleted."""
    state: EmotionalState
    decision_type: DecisionType
    count: int = 0
    total_score: float = 0.0
    success_count: int = 0
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return pattern_key(self.state, self.decision_type)

    @property
    def avg_score(self) -> float:
        return self.total_score / self.count if self.count else 0.0

    @property
    def success_rate(self) -> float:
        return self.success_count / self.count if self.count else 0.0

    @property
    def should_continue(self) -> bool:
        return self.success_rate > CONTINUE_THRESHOLD

    def record(self, score: float, at: datetime) -> None:
        self.count += 1
        self.total_score += score
        if score > SUCCESS_THRESHOLD:
            self.success_count += 1
        self.last_updated = at

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "state": self.state.value,
            "decision_type": self.decision_type.value,
            "count": self.count,
            "total_score": self.total_score,
            "success_count": self.success_count,
            "avg_score": self.avg_score,
            "success_rate": self.success_rate,
            "should_continue": self.should_continue,
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Pattern:
        return cls(
            state=EmotionalState(data["state"]),
            decision_type=DecisionType(data["decision_type"]),
            count=data.get("count", 0),
            total_score=data.get("total_score", 0.0),
            success_count=data.get("success_count", 0),
            last_updated=parse_timestamp(data["last_updated"]),
        )


@dataclass(frozen=True)
class PatternLookup:
    """What consumers see of a surfaced pattern."""
    avg_score: float
    success_rate: float
    should_continue: bool
    count: int


def pattern_key(state: EmotionalState, decision_type: DecisionType) -> str:
    return f"{state.value}:{decision_type.value}"
