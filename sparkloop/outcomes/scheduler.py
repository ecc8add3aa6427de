"""
Outcome scheduler - deferred evaluation of executed actions.

Engagement is only measurable a while after posting. Every executed action
is queued with a not-before timestamp; a recurring drain claims due records,
fetches their metrics, scores them and feeds the score back into learning.

Claiming is the one place that needs mutual exclusion: a record is moved
pending -> evaluating through a compare-and-set in the store before any
metrics fetch starts, so overlapping drains can never score it twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Awaitable, Callable, Optional
import asyncio
import logging

from ..clock import Clock, utcnow
from ..models.decision import Decision, DecisionType
from ..models.emotion import EmotionalState
from ..models.outcome import EngagementMetrics, OutcomeStatus, PendingOutcome
from ..learning.patterns import PatternAggregator
from ..storage.store import AgentStore
from .scoring import score_outcome

logger = logging.getLogger(__name__)

FetchMetrics = Callable[[str], Awaitable[Optional[EngagementMetrics]]]
OutcomeListener = Callable[[PendingOutcome], Awaitable[None]]


@dataclass
class SchedulerConfig:
    """Timing for deferred evaluation."""
    check_delay: timedelta = timedelta(hours=24)
    retry_delay: timedelta = timedelta(hours=1)
    max_attempts: int = 3  # 1 = a single failure is terminal
    fetch_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ExecutedAction:
    """An action that the platform confirmed."""
    decision: Decision
    state: EmotionalState
    event_id: Optional[str] = None
    artifact_id: Optional[str] = None
    author_id: Optional[str] = None
    topic: Optional[str] = None
    initial_metrics: Optional[EngagementMetrics] = None


@dataclass
class DrainResult:
    checked: int = 0
    scored: int = 0
    failed: int = 0
    requeued: int = 0

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "scored": self.scored,
            "failed": self.failed,
            "requeued": self.requeued,
        }


@dataclass
class OutcomeStats:
    pending_count: int = 0
    completed_recent: int = 0
    average_score: Optional[float] = None
    failed_count: int = 0
    recent_scores: list[float] = field(default_factory=list)


class OutcomeScheduler:
    """Owns the PendingOutcome lifecycle."""

    def __init__(
        self,
        store: AgentStore,
        patterns: PatternAggregator,
        config: Optional[SchedulerConfig] = None,
        clock: Clock = utcnow,
        listeners: Optional[list[OutcomeListener]] = None,
    ):
        self.store = store
        self.patterns = patterns
        self.config = config or SchedulerConfig()
        self.clock = clock
        self.listeners: list[OutcomeListener] = list(listeners or [])
        self._claim_lock = asyncio.Lock()

    def add_listener(self, listener: OutcomeListener) -> None:
        self.listeners.append(listener)

    async def create_pending(self, action: ExecutedAction) -> str:
        """Queue an executed action for evaluation after the check delay."""
        action_type = action.decision.decision_type
        if not action_type.is_platform_action:
            raise ValueError(f"{action_type.value} is not an executed action")

        now = self.clock()
        outcome = PendingOutcome(
            outcome_id=PendingOutcome.generate_id(),
            action_type=action_type,
            event_id=action.event_id,
            state=action.state,
            check_after=now + self.config.check_delay,
            artifact_id=action.artifact_id,
            target_id=action.decision.target_id,
            author_id=action.author_id,
            topic=action.topic,
            created_at=now,
            initial_metrics=action.initial_metrics,
        )
        await self.store.save_outcome(outcome)
        if action.event_id:
            await self.store.attach_outcome(action.event_id, outcome.outcome_id)

        logger.info(
            f"Queued {action_type.value} outcome {outcome.outcome_id}, "
            f"check after {outcome.check_after.isoformat()}"
        )
        return outcome.outcome_id

    async def recover_interrupted(self) -> int:
        """
        Re-queue records left in evaluating by a drain that never finished.

        Only safe at startup, before any drain is running.
        """
        stuck = await self.store.outcomes_by_status(OutcomeStatus.EVALUATING)
        for outcome in stuck:
            outcome.requeue(self.clock(), "evaluation interrupted")
            await self.store.save_outcome(outcome)
        if stuck:
            logger.warning(f"Re-queued {len(stuck)} interrupted outcome evaluations")
        return len(stuck)

    async def drain_due(self, limit: int, fetch_metrics: FetchMetrics) -> DrainResult:
        """Evaluate up to `limit` due records."""
        result = DrainResult()
        now = self.clock()

        async with self._claim_lock:
            due = await self.store.due_outcomes(now, limit)
            claimed = []
            for outcome in due:
                record = await self.store.claim_outcome(outcome, now)
                if record is not None:
                    claimed.append(record)

        for outcome in claimed:
            result.checked += 1
            status = await self._evaluate(outcome, fetch_metrics)
            if status == OutcomeStatus.COMPLETED:
                result.scored += 1
            elif status == OutcomeStatus.FAILED:
                result.failed += 1
            elif status == OutcomeStatus.PENDING:
                result.requeued += 1

        if result.checked:
            logger.info(
                f"Outcome drain: checked {result.checked}, scored {result.scored}, "
                f"failed {result.failed}, requeued {result.requeued}"
            )
        return result

    @staticmethod
    def _needs_metrics(outcome: PendingOutcome) -> bool:
        return outcome.action_type != DecisionType.LIKE and outcome.artifact_id is not None

    async def _evaluate(
        self,
        outcome: PendingOutcome,
        fetch_metrics: FetchMetrics,
    ) -> OutcomeStatus:
        metrics = None
        if self._needs_metrics(outcome):
            try:
                metrics = await asyncio.wait_for(
                    fetch_metrics(outcome.artifact_id),
                    timeout=self.config.fetch_timeout_seconds,
                )
            except Exception as e:
                return await self._retry_or(outcome, f"metrics fetch failed: {e!r}")

            if metrics is None and outcome.attempts < self.config.max_attempts:
                return await self._retry_or(outcome, "metrics unavailable")

        try:
            score = score_outcome(outcome.action_type, metrics)
        except Exception as e:
            return await self._retry_or(outcome, f"scoring failed: {e!r}")

        outcome.complete(score, metrics, now=self.clock())
        if not await self.store.save_outcome(outcome):
            # Stored copy stays evaluating until recover_interrupted re-queues it
            logger.error(
                f"Outcome {outcome.outcome_id} scored {score:.2f} but could not be saved; "
                f"left for recovery"
            )
            return OutcomeStatus.EVALUATING
        logger.info(
            f"Outcome {outcome.outcome_id} ({outcome.action_type.value}) scored {score:.2f}"
        )
        await self._finalize(outcome)
        return outcome.status

    async def _retry_or(self, outcome: PendingOutcome, error: str) -> OutcomeStatus:
        """Re-queue while attempts remain, otherwise fail the record."""
        now = self.clock()
        if outcome.attempts < self.config.max_attempts:
            outcome.requeue(now + self.config.retry_delay, error)
            logger.warning(
                f"Outcome {outcome.outcome_id} attempt {outcome.attempts} "
                f"re-queued: {error}"
            )
        else:
            outcome.fail(error, now)
            logger.error(f"Outcome {outcome.outcome_id} failed: {error}")
        await self.store.save_outcome(outcome)
        return outcome.status

    async def _finalize(self, outcome: PendingOutcome) -> None:
        """Fold a completed score back into learned weights."""
        await self.patterns.record_outcome(
            outcome.state, outcome.action_type, outcome.outcome_score
        )
        for listener in self.listeners:
            try:
                await listener(outcome)
            except Exception as e:
                logger.error(f"Outcome listener failed for {outcome.outcome_id}: {e}")

    async def stats(self, recent: int = 20) -> OutcomeStats:
        pending = await self.store.outcomes_by_status(OutcomeStatus.PENDING)
        failed = await self.store.outcomes_by_status(OutcomeStatus.FAILED)
        completed = await self.store.outcomes_by_status(OutcomeStatus.COMPLETED)
        completed.sort(key=lambda o: o.evaluated_at or o.created_at, reverse=True)
        scores = [o.outcome_score for o in completed[:recent] if o.outcome_score is not None]

        return OutcomeStats(
            pending_count=len(pending),
            completed_recent=len(scores),
            average_score=sum(scores) / len(scores) if scores else None,
            failed_count=len(failed),
            recent_scores=scores,
        )
