"""
Deferred outcome models.

A PendingOutcome tracks one executed action until enough time has passed
to measure the engagement it received. Its lifecycle is

    pending -> evaluating -> completed | failed

with one extra edge, evaluating -> pending, used to re-queue a record
after a transient metrics failure while retry attempts remain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from ..clock import parse_timestamp, utcnow
from ..exceptions import InvalidTransition
from .decision import DecisionType
from .emotion import EmotionalState


class OutcomeStatus(Enum):
    PENDING = "pending"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OutcomeStatus.COMPLETED, OutcomeStatus.FAILED)


@dataclass(frozen=True)
class EngagementMetrics:
    """Engagement observed on a posted artifact."""
    likes: int = 0
    replies: int = 0
    retweets: int = 0
    impressions: int = 0

    @classmethod
    def from_public_metrics(cls, metrics: dict) -> EngagementMetrics:
        """Build from an X API v2 public_metrics object."""
        return cls(
            likes=metrics.get("like_count", 0),
            replies=metrics.get("reply_count", 0),
            retweets=metrics.get("retweet_count", 0) + metrics.get("quote_count", 0),
            impressions=metrics.get("impression_count", 0),
        )

    def to_dict(self) -> dict:
        return {
            "likes": self.likes,
            "replies": self.replies,
            "retweets": self.retweets,
            "impressions": self.impressions,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[EngagementMetrics]:
        if data is None:
            return None
        return cls(
            likes=data.get("likes", 0),
            replies=data.get("replies", 0),
            retweets=data.get("retweets", 0),
            impressions=data.get("impressions", 0),
        )


@dataclass
class PendingOutcome:
    """
    An executed action waiting for its engagement to be measured.

    The emotional state and counterparty are copied from the originating
    event so the finalize step can update learned weights without a join.
    """
    outcome_id: str
    action_type: DecisionType
    event_id: Optional[str]
    state: EmotionalState
    check_after: datetime
    artifact_id: Optional[str] = None
    target_id: Optional[str] = None
    author_id: Optional[str] = None
    topic: Optional[str] = None
    status: OutcomeStatus = OutcomeStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    initial_metrics: Optional[EngagementMetrics] = None
    latest_metrics: Optional[EngagementMetrics] = None
    outcome_score: Optional[float] = None
    evaluated_at: Optional[datetime] = None
    attempts: int = 0
    last_error: Optional[str] = None

    @staticmethod
    def generate_id() -> str:
        return f"out_{uuid.uuid4().hex[:12]}"

    def is_due(self, now: datetime) -> bool:
        return self.status == OutcomeStatus.PENDING and self.check_after <= now

    def _require(self, expected: OutcomeStatus, target: OutcomeStatus) -> None:
        if self.status != expected:
            raise InvalidTransition(
                f"Outcome {self.outcome_id}: cannot move {self.status.value} -> {target.value}"
            )

    def mark_evaluating(self, now: datetime) -> None:
        self._require(OutcomeStatus.PENDING, OutcomeStatus.EVALUATING)
        if self.check_after > now:
            raise InvalidTransition(
                f"Outcome {self.outcome_id} is not due until {self.check_after.isoformat()}"
            )
        self.status = OutcomeStatus.EVALUATING
        self.attempts += 1

    def complete(
        self,
        score: float,
        metrics: Optional[EngagementMetrics],
        now: datetime,
    ) -> None:
        self._require(OutcomeStatus.EVALUATING, OutcomeStatus.COMPLETED)
        if score is None:
            raise InvalidTransition(f"Outcome {self.outcome_id}: completion requires a score")
        self.status = OutcomeStatus.COMPLETED
        self.outcome_score = score
        self.latest_metrics = metrics
        self.evaluated_at = now
        self.last_error = None

    def fail(self, error: str, now: datetime) -> None:
        self._require(OutcomeStatus.EVALUATING, OutcomeStatus.FAILED)
        self.status = OutcomeStatus.FAILED
        self.last_error = error
        self.evaluated_at = now

    def requeue(self, check_after: datetime, error: str) -> None:
        """Return an evaluating record to pending for another attempt."""
        self._require(OutcomeStatus.EVALUATING, OutcomeStatus.PENDING)
        self.status = OutcomeStatus.PENDING
        self.check_after = check_after
        self.last_error = error

    def to_dict(self) -> dict:
        return {
            "outcome_id": self.outcome_id,
            "action_type": self.action_type.value,
            "event_id": self.event_id,
            "state": self.state.value,
            "check_after": self.check_after.isoformat(),
            "artifact_id": self.artifact_id,
            "target_id": self.target_id,
            "author_id": self.author_id,
            "topic": self.topic,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "initial_metrics": self.initial_metrics.to_dict() if self.initial_metrics else None,
            "latest_metrics": self.latest_metrics.to_dict() if self.latest_metrics else None,
            "outcome_score": self.outcome_score,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PendingOutcome:
        return cls(
            outcome_id=data["outcome_id"],
            action_type=DecisionType(data["action_type"]),
            event_id=data.get("event_id"),
            state=EmotionalState(data["state"]),
            check_after=parse_timestamp(data["check_after"]),
            artifact_id=data.get("artifact_id"),
            target_id=data.get("target_id"),
            author_id=data.get("author_id"),
            topic=data.get("topic"),
            status=OutcomeStatus(data.get("status", "pending")),
            created_at=parse_timestamp(data["created_at"]),
            initial_metrics=EngagementMetrics.from_dict(data.get("initial_metrics")),
            latest_metrics=EngagementMetrics.from_dict(data.get("latest_metrics")),
            outcome_score=data.get("outcome_score"),
            evaluated_at=parse_timestamp(data["evaluated_at"]) if data.get("evaluated_at") else None,
            attempts=data.get("attempts", 0),
            last_error=data.get("last_error"),
        )
