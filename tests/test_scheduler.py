"""Tests for the deferred outcome scheduler."""

import asyncio
from datetime import timedelta

import pytest

from sparkloop.learning import PatternAggregator
from sparkloop.models import (
    Decision,
    DecisionType,
    EmotionalState,
    EngagementMetrics,
    OutcomeStatus,
)
from sparkloop.outcomes import ExecutedAction, OutcomeScheduler, SchedulerConfig
from sparkloop.storage import AgentStore, InMemoryBackend, JsonFileBackend


def _reply(artifact_id="post_1", author_id="u1"):
    return ExecutedAction(
        decision=Decision(DecisionType.REPLY, target_id="42", content="hi"),
        state=EmotionalState.CURIOUS,
        artifact_id=artifact_id,
        author_id=author_id,
        topic="philosophy_of_mind",
    )


def _scheduler(store, clock, **config):
    patterns = PatternAggregator(store, min_samples=1, clock=clock)
    return OutcomeScheduler(store, patterns, config=SchedulerConfig(**config), clock=clock)


class MetricsSource:
    """Counts fetches and answers from a fixed table."""

    def __init__(self, metrics=None, error=None, delay=0.0):
        self.metrics = metrics or {}
        self.error = error
        self.delay = delay
        self.calls = []

    async def __call__(self, artifact_id):
        self.calls.append(artifact_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.metrics.get(artifact_id)


@pytest.mark.asyncio
async def test_drain_before_check_after_does_nothing(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource({"post_1": EngagementMetrics(likes=3)})

    outcome_id = await scheduler.create_pending(_reply())
    outcome = await store.get_outcome(outcome_id)
    assert outcome.check_after == clock.now + timedelta(hours=24)

    clock.advance(hours=23, minutes=59)
    result = await scheduler.drain_due(10, source)

    assert result.checked == 0
    assert result.scored == 0
    assert source.calls == []
    assert (await store.get_outcome(outcome_id)).status == OutcomeStatus.PENDING


@pytest.mark.asyncio
async def test_due_outcome_is_scored_and_learned(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource({"post_1": EngagementMetrics(likes=10, replies=3, retweets=2)})
    seen = []

    async def listener(outcome):
        seen.append(outcome.outcome_id)

    scheduler.add_listener(listener)
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)

    result = await scheduler.drain_due(10, source)

    assert result.to_dict() == {"checked": 1, "scored": 1, "failed": 0, "requeued": 0}
    outcome = await store.get_outcome(outcome_id)
    assert outcome.status == OutcomeStatus.COMPLETED
    assert outcome.outcome_score == pytest.approx(0.80)
    assert outcome.latest_metrics.replies == 3
    assert seen == [outcome_id]

    lookup = scheduler.patterns.lookup(EmotionalState.CURIOUS, DecisionType.REPLY)
    assert lookup.count == 1
    assert lookup.avg_score == pytest.approx(0.80)


@pytest.mark.asyncio
async def test_completed_outcome_is_never_rescored(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource({"post_1": EngagementMetrics(likes=1)})
    await scheduler.create_pending(_reply())
    clock.advance(hours=25)

    await scheduler.drain_due(10, source)
    second = await scheduler.drain_due(10, source)

    assert second.checked == 0
    assert len(source.calls) == 1
    assert scheduler.patterns.patterns["curious:reply"].count == 1


@pytest.mark.asyncio
async def test_concurrent_drains_score_each_record_once(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource({f"post_{i}": EngagementMetrics(likes=i) for i in range(5)}, delay=0.01)
    for i in range(5):
        await scheduler.create_pending(_reply(artifact_id=f"post_{i}"))
    clock.advance(hours=24)

    results = await asyncio.gather(
        scheduler.drain_due(10, source),
        scheduler.drain_due(10, source),
        scheduler.drain_due(10, source),
    )

    assert sum(r.checked for r in results) == 5
    assert sum(r.scored for r in results) == 5
    assert sorted(source.calls) == sorted(f"post_{i}" for i in range(5))
    assert scheduler.patterns.patterns["curious:reply"].count == 5


@pytest.mark.asyncio
async def test_two_schedulers_sharing_a_store_do_not_double_claim(clock):
    store = AgentStore(InMemoryBackend())
    first = _scheduler(store, clock)
    second = _scheduler(store, clock)
    source = MetricsSource({"post_1": EngagementMetrics(likes=2)}, delay=0.01)
    await first.create_pending(_reply())
    clock.advance(hours=24)

    a, b = await asyncio.gather(first.drain_due(5, source), second.drain_due(5, source))

    assert a.checked + b.checked == 1
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_like_is_scored_without_fetch(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource()
    outcome_id = await scheduler.create_pending(ExecutedAction(
        decision=Decision(DecisionType.LIKE, target_id="42"),
        state=EmotionalState.APPRECIATIVE,
    ))
    clock.advance(hours=24)

    result = await scheduler.drain_due(10, source)

    assert result.scored == 1
    assert source.calls == []
    assert (await store.get_outcome(outcome_id)).outcome_score == 0.4


@pytest.mark.asyncio
async def test_fetch_error_is_retried_then_fails(store, clock):
    scheduler = _scheduler(store, clock, max_attempts=2, retry_delay=timedelta(hours=1))
    source = MetricsSource(error=ConnectionError("boom"))
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)

    first = await scheduler.drain_due(10, source)
    assert first.requeued == 1
    outcome = await store.get_outcome(outcome_id)
    assert outcome.status == OutcomeStatus.PENDING
    assert "boom" in outcome.last_error

    # Not due again until the retry delay has passed
    assert (await scheduler.drain_due(10, source)).checked == 0

    clock.advance(hours=1)
    second = await scheduler.drain_due(10, source)
    assert second.failed == 1
    outcome = await store.get_outcome(outcome_id)
    assert outcome.status == OutcomeStatus.FAILED
    assert outcome.outcome_score is None
    assert scheduler.patterns.patterns == {}


@pytest.mark.asyncio
async def test_single_attempt_fails_immediately(store, clock):
    scheduler = _scheduler(store, clock, max_attempts=1)
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)

    result = await scheduler.drain_due(10, MetricsSource(error=RuntimeError("down")))

    assert result.failed == 1
    assert (await store.get_outcome(outcome_id)).status == OutcomeStatus.FAILED


@pytest.mark.asyncio
async def test_missing_metrics_completes_neutral_after_last_attempt(store, clock):
    scheduler = _scheduler(store, clock, max_attempts=2, retry_delay=timedelta(minutes=30))
    source = MetricsSource()  # Always None
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)

    assert (await scheduler.drain_due(10, source)).requeued == 1
    clock.advance(minutes=30)
    assert (await scheduler.drain_due(10, source)).scored == 1

    outcome = await store.get_outcome(outcome_id)
    assert outcome.status == OutcomeStatus.COMPLETED
    assert outcome.outcome_score == 0.3
    assert outcome.attempts == 2


@pytest.mark.asyncio
async def test_drain_respects_limit_oldest_first(store, clock):
    scheduler = _scheduler(store, clock)
    source = MetricsSource()
    ids = []
    for i in range(3):
        ids.append(await scheduler.create_pending(_reply(artifact_id=None)))
        clock.advance(minutes=1)
    clock.advance(hours=24)

    result = await scheduler.drain_due(2, source)

    assert result.checked == 2
    statuses = [(await store.get_outcome(i)).status for i in ids]
    assert statuses == [OutcomeStatus.COMPLETED, OutcomeStatus.COMPLETED, OutcomeStatus.PENDING]


@pytest.mark.asyncio
async def test_listener_failure_does_not_break_drain(store, clock):
    scheduler = _scheduler(store, clock)

    async def broken(outcome):
        raise RuntimeError("listener down")

    scheduler.add_listener(broken)
    await scheduler.create_pending(_reply(artifact_id=None))
    clock.advance(hours=24)

    result = await scheduler.drain_due(10, MetricsSource())
    assert result.scored == 1


@pytest.mark.asyncio
async def test_skip_cannot_be_queued(store, clock):
    scheduler = _scheduler(store, clock)
    with pytest.raises(ValueError):
        await scheduler.create_pending(ExecutedAction(
            decision=Decision.skip(),
            state=EmotionalState.WARY,
        ))


@pytest.mark.asyncio
async def test_recover_interrupted_requeues_evaluating(store, clock):
    scheduler = _scheduler(store, clock)
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)
    outcome = await store.get_outcome(outcome_id)
    assert await store.claim_outcome(outcome, clock.now) is not None

    recovered = await scheduler.recover_interrupted()

    assert recovered == 1
    assert (await store.get_outcome(outcome_id)).status == OutcomeStatus.PENDING
    result = await scheduler.drain_due(10, MetricsSource({"post_1": EngagementMetrics(likes=1)}))
    assert result.scored == 1


class CompletionWriteFails(InMemoryBackend):
    """Refuses to persist completed outcomes until told otherwise."""

    def __init__(self):
        super().__init__()
        self.failing = True

    async def save(self, collection, key, data):
        if self.failing and data.get("status") == "completed":
            raise OSError("disk full")
        await super().save(collection, key, data)


@pytest.mark.asyncio
async def test_unsaved_completion_is_not_learned_twice(clock):
    backend = CompletionWriteFails()
    store = AgentStore(backend)
    scheduler = _scheduler(store, clock)
    source = MetricsSource({"post_1": EngagementMetrics(likes=1)})
    outcome_id = await scheduler.create_pending(_reply())
    clock.advance(hours=24)

    first = await scheduler.drain_due(10, source)

    assert first.checked == 1
    assert first.scored == 0
    assert (await store.get_outcome(outcome_id)).status == OutcomeStatus.EVALUATING
    assert "curious:reply" not in scheduler.patterns.patterns

    backend.failing = False
    assert await scheduler.recover_interrupted() == 1
    second = await scheduler.drain_due(10, source)

    assert second.scored == 1
    assert (await store.get_outcome(outcome_id)).status == OutcomeStatus.COMPLETED
    assert scheduler.patterns.patterns["curious:reply"].count == 1


@pytest.mark.asyncio
async def test_stats(store, clock):
    scheduler = _scheduler(store, clock)
    await scheduler.create_pending(_reply(artifact_id=None))
    await scheduler.create_pending(_reply(artifact_id=None))
    clock.advance(hours=24)
    await scheduler.create_pending(_reply(artifact_id=None))

    await scheduler.drain_due(10, MetricsSource())
    stats = await scheduler.stats()

    assert stats.pending_count == 1
    assert stats.completed_recent == 2
    assert stats.average_score == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_outcomes_survive_a_restart_with_json_backend(tmp_path, clock):
    store = AgentStore(JsonFileBackend(tmp_path))
    scheduler = _scheduler(store, clock)
    outcome_id = await scheduler.create_pending(_reply())

    reopened = AgentStore(JsonFileBackend(tmp_path))
    restarted = _scheduler(reopened, clock)
    clock.advance(hours=24)
    result = await restarted.drain_due(10, MetricsSource({"post_1": EngagementMetrics(replies=1)}))

    assert result.scored == 1
    assert (await reopened.get_outcome(outcome_id)).status == OutcomeStatus.COMPLETED
