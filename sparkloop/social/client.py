"""
Social platform interface and an in-memory double.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import itertools

from ..clock import utcnow
from ..exceptions import PlatformError
from ..models.decision import Decision, DecisionType
from ..models.outcome import EngagementMetrics
from ..models.stimulus import Stimulus


@dataclass(frozen=True)
class PostResult:
    """What the platform returned for an executed action."""
    decision_type: DecisionType
    artifact_id: Optional[str] = None  # New post id; None for likes and follows
    posted_at: datetime = field(default_factory=utcnow)


class PlatformClient(ABC):
    """Operations the agent needs from a social platform."""

    @abstractmethod
    async def get_mentions(self, limit: int = 20) -> list[Stimulus]:
        pass

    @abstractmethod
    async def get_timeline(self, limit: int = 20) -> list[Stimulus]:
        pass

    @abstractmethod
    async def post_action(self, decision: Decision) -> PostResult:
        """Execute a decision. Raises PlatformError if the platform refuses."""
        pass

    @abstractmethod
    async def fetch_metrics(self, artifact_id: str) -> Optional[EngagementMetrics]:
        """Current engagement, or None when temporarily unavailable."""
        pass

    async def close(self) -> None:
        pass


class MockPlatformClient(PlatformClient):
    """In-memory platform for tests and demos."""

    def __init__(self):
        self.mentions: list[Stimulus] = []
        self.timeline: list[Stimulus] = []
        self.posted: list[Decision] = []
        self.metrics: dict[str, Optional[EngagementMetrics]] = {}
        self.fail_posts = False
        self.metrics_error: Optional[Exception] = None
        self._ids = itertools.count(1)

    async def get_mentions(self, limit: int = 20) -> list[Stimulus]:
        return self.mentions[:limit]

    async def get_timeline(self, limit: int = 20) -> list[Stimulus]:
        return self.timeline[:limit]

    async def post_action(self, decision: Decision) -> PostResult:
        if self.fail_posts:
            raise PlatformError("mock platform refused the post", status=503)
        if not decision.decision_type.is_platform_action:
            raise PlatformError(f"cannot execute {decision.decision_type.value}")

        self.posted.append(decision)
        artifact_id = None
        if decision.decision_type.produces_content:
            artifact_id = f"post_{next(self._ids)}"
        return PostResult(decision_type=decision.decision_type, artifact_id=artifact_id)

    async def fetch_metrics(self, artifact_id: str) -> Optional[EngagementMetrics]:
        if self.metrics_error is not None:
            raise self.metrics_error
        return self.metrics.get(artifact_id)
