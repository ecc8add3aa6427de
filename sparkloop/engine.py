"""
Agent engine - the stimulus -> decision -> outcome loop.

One cycle gathers stimuli, processes them strictly in order (each one's
emotional context feeds the next), executes what the gates approve and
queues every executed action for deferred evaluation. A separate poll
drains due outcomes and folds their scores back into learned weights.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional
import asyncio
import logging
import random

from .cache import BoundedCache
from .clock import Clock, utcnow
from .config.settings import AgentSettings
from .emotions.classifier import StimulusClassifier
from .emotions.state import EmotionalStateStore
from .gates.base import ChainVerdict, GateChain, GateContext
from .gates.principles import PrincipleGate
from .gates.safety import ContentSafetyGate
from .gates.triage import TriageGate
from .generation.composer import ContentGenerator, LLMContentGenerator
from .learning.patterns import PatternAggregator
from .learning.relationships import RelationshipTracker
from .learning.topics import TopicWeights, detect_topic
from .llm.client import LLMClient
from .models.decision import Decision, DecisionType
from .models.emotion import AgentContext, Classification, EmotionalState
from .models.event import EmotionalEvent
from .models.outcome import PendingOutcome
from .models.stimulus import Stimulus
from .outcomes.scheduler import DrainResult, ExecutedAction, OutcomeScheduler, SchedulerConfig
from .social.client import PlatformClient
from .storage.store import AgentStore

logger = logging.getLogger(__name__)

EXECUTED = "executed"
REJECTED = "rejected"
FAILED = "failed"

ORIGINAL_POST_STATE = EmotionalState.CONTEMPLATIVE
ORIGINAL_POST_INTENSITY = 0.7


@dataclass
class StimulusResult:
    """What happened to one stimulus (or one original-post attempt)."""
    status: str
    context: AgentContext
    classification: Classification
    decision: Decision
    reason: str = ""
    stimulus: Optional[Stimulus] = None
    event: Optional[EmotionalEvent] = None
    outcome_id: Optional[str] = None
    spark: Optional[float] = None


@dataclass
class CycleReport:
    """Summary of one processing cycle."""
    cycle: int
    started_at: datetime
    starting_state: EmotionalState
    finished_at: Optional[datetime] = None
    ending_state: Optional[EmotionalState] = None
    scanned: int = 0
    duplicates: int = 0
    executed: int = 0
    rejected: int = 0
    failed: int = 0
    original_post: bool = False
    interrupted: bool = False
    results: list[StimulusResult] = field(default_factory=list)

    def record(self, result: StimulusResult) -> None:
        self.results.append(result)
        if result.status == EXECUTED:
            self.executed += 1
        elif result.status == REJECTED:
            self.rejected += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return {
            "cycle": self.cycle,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "starting_state": self.starting_state.value,
            "ending_state": self.ending_state.value if self.ending_state else None,
            "scanned": self.scanned,
            "duplicates": self.duplicates,
            "executed": self.executed,
            "rejected": self.rejected,
            "failed": self.failed,
            "original_post": self.original_post,
            "interrupted": self.interrupted,
        }


DecisionCallback = Callable[[Decision], Awaitable[None]]
EventCallback = Callable[[EmotionalEvent], Awaitable[None]]


class AgentEngine:
    """
    Orchestrates classification, gating, execution and deferred learning.

    Gate chains:
    - intent: triage then principles, before any text exists
    - reflection: principles only, for self-initiated original posts
    - content: safety re-check of generated text, right before posting
    """

    def __init__(
        self,
        platform: PlatformClient,
        store: AgentStore,
        state: EmotionalStateStore,
        classifier: StimulusClassifier,
        intent_chain: GateChain,
        reflection_chain: GateChain,
        content_chain: GateChain,
        generator: ContentGenerator,
        scheduler: OutcomeScheduler,
        patterns: PatternAggregator,
        topics: TopicWeights,
        relationships: RelationshipTracker,
        settings: Optional[AgentSettings] = None,
        seen: Optional[BoundedCache] = None,
        generation_timeout: float = 30.0,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.platform = platform
        self.store = store
        self.state = state
        self.classifier = classifier
        self.intent_chain = intent_chain
        self.reflection_chain = reflection_chain
        self.content_chain = content_chain
        self.generator = generator
        self.scheduler = scheduler
        self.patterns = patterns
        self.topics = topics
        self.relationships = relationships
        self.settings = settings or AgentSettings()
        self.seen = seen or BoundedCache(self.settings.seen_cache_capacity)
        self.generation_timeout = generation_timeout
        self.clock = clock
        self.rng = rng or random.Random()

        self.cycle_count = 0
        self._stop_requested = False

        # Callbacks for the action executor and telemetry
        self.on_decision: Optional[DecisionCallback] = None
        self.on_event: Optional[EventCallback] = None

        self.scheduler.add_listener(self._learn_from_outcome)

    @classmethod
    def build(
        cls,
        platform: PlatformClient,
        llm: LLMClient,
        store: Optional[AgentStore] = None,
        settings: Optional[AgentSettings] = None,
        call_timeout: float = 20.0,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
    ) -> AgentEngine:
        """Wire the default components around one LLM client."""
        settings = settings or AgentSettings()
        store = store or AgentStore()

        patterns = PatternAggregator(store, min_samples=settings.pattern_min_samples, clock=clock)
        topics = TopicWeights(store)
        relationships = RelationshipTracker(store, clock=clock)

        triage = TriageGate(
            patterns,
            topics,
            threshold=settings.spark_threshold,
            scout=llm if settings.scout_enabled else None,
        )
        principles = PrincipleGate(llm)
        safety = ContentSafetyGate(llm)

        scheduler = OutcomeScheduler(
            store,
            patterns,
            config=SchedulerConfig(
                check_delay=timedelta(hours=settings.outcome_check_delay_hours),
                retry_delay=timedelta(minutes=settings.outcome_retry_delay_minutes),
                max_attempts=settings.outcome_max_attempts,
            ),
            clock=clock,
        )

        return cls(
            platform=platform,
            store=store,
            state=EmotionalStateStore(clock=clock),
            classifier=StimulusClassifier(),
            intent_chain=GateChain([triage, principles], timeout_seconds=call_timeout),
            reflection_chain=GateChain([principles], timeout_seconds=call_timeout),
            content_chain=GateChain([safety], timeout_seconds=call_timeout),
            generator=LLMContentGenerator(llm, patterns),
            scheduler=scheduler,
            patterns=patterns,
            topics=topics,
            relationships=relationships,
            settings=settings,
            generation_timeout=call_timeout,
            clock=clock,
            rng=rng,
        )

    async def prepare(self) -> None:
        """Restore persisted state before the first cycle."""
        await self.state.restore(self.store)
        await self.patterns.load()
        await self.topics.load()
        await self.scheduler.recover_interrupted()

    def request_stop(self) -> None:
        """Stop after the stimulus currently being processed."""
        self._stop_requested = True

    # Cycle
    async def gather_stimuli(self) -> list[Stimulus]:
        """Mentions first, then the timeline, without duplicates."""
        stimuli: list[Stimulus] = []
        for source in (self.platform.get_mentions, self.platform.get_timeline):
            try:
                stimuli.extend(await asyncio.wait_for(
                    source(limit=self.settings.stimulus_page_size),
                    timeout=self.settings.platform_timeout_seconds,
                ))
            except asyncio.TimeoutError:
                logger.error(
                    f"Timed out fetching stimuli from {source.__name__} "
                    f"after {self.settings.platform_timeout_seconds}s"
                )
            except Exception as e:
                logger.error(f"Failed to fetch stimuli from {source.__name__}: {e}")

        unique: dict[str, Stimulus] = {}
        for stimulus in stimuli:
            unique.setdefault(stimulus.stimulus_id, stimulus)
        return list(unique.values())

    async def run_cycle(self, stimuli: Optional[list[Stimulus]] = None) -> CycleReport:
        """Process one batch of stimuli in order."""
        self.cycle_count += 1
        self._stop_requested = False
        context = self.state.current
        report = CycleReport(
            cycle=self.cycle_count,
            started_at=self.clock(),
            starting_state=context.state,
        )

        if stimuli is None:
            stimuli = await self.gather_stimuli()

        for stimulus in stimuli:
            if self._stop_requested:
                report.interrupted = True
                logger.info("Stop requested, ending cycle early")
                break
            if report.scanned >= self.settings.max_stimuli_per_cycle:
                break

            if not self.seen.add(stimulus.stimulus_id):
                report.duplicates += 1
                continue

            report.scanned += 1
            result = await self.process_stimulus(stimulus, context)
            context = result.context
            self.state.commit(context)
            report.record(result)

        if not self._stop_requested and self.rng.random() < self.settings.original_post_probability:
            result = await self.compose_original(self.state.current)
            self.state.commit(result.context)
            report.original_post = result.status == EXECUTED
            report.record(result)

        report.finished_at = self.clock()
        report.ending_state = self.state.current.state
        logger.info(
            f"Cycle {report.cycle}: scanned {report.scanned}, executed {report.executed}, "
            f"rejected {report.rejected}, failed {report.failed} "
            f"({report.starting_state.value} -> {report.ending_state.value})"
        )
        return report

    async def process_stimulus(self, stimulus: Stimulus, context: AgentContext) -> StimulusResult:
        """Classify, gate and (if approved) act on one stimulus."""
        classification = self.classifier.classify(stimulus.text)
        context = context.transition(
            classification.state, classification.intensity, at=self.clock()
        )

        gate_context = GateContext(
            classification=classification,
            agent=context,
            decision=Decision(
                classification.suggested_decision,
                target_id=stimulus.stimulus_id,
                reasoning=classification.reasoning,
            ),
            stimulus=stimulus,
            relationship=await self.relationships.get(stimulus.author_id),
            topic=detect_topic(stimulus.text),
        )

        intent = await self.intent_chain.evaluate(gate_context)
        return await self._act(gate_context, intent)

    async def compose_original(self, context: AgentContext) -> StimulusResult:
        """Try to publish a self-initiated post."""
        context = context.transition(ORIGINAL_POST_STATE, ORIGINAL_POST_INTENSITY, at=self.clock())
        gate_context = GateContext(
            classification=Classification(
                state=ORIGINAL_POST_STATE,
                intensity=ORIGINAL_POST_INTENSITY,
                reasoning="Composing an original thought",
                suggested_decision=DecisionType.ORIGINAL_POST,
            ),
            agent=context,
            decision=Decision(DecisionType.ORIGINAL_POST, reasoning="Original post"),
        )
        intent = await self.reflection_chain.evaluate(gate_context)
        return await self._act(gate_context, intent)

    async def _act(self, gate_context: GateContext, intent: ChainVerdict) -> StimulusResult:
        if not intent.approved:
            return await self._not_taken(gate_context, REJECTED, intent.reason, intent.spark)

        decision = intent.decision
        gate_context = replace(gate_context, decision=decision, spark=intent.spark)

        if decision.decision_type.produces_content:
            try:
                text = await asyncio.wait_for(
                    self.generator.generate(
                        decision,
                        gate_context.agent,
                        stimulus=gate_context.stimulus,
                        guidance=intent.guidance,
                    ),
                    timeout=self.generation_timeout,
                )
            except Exception as e:
                logger.warning(f"Content generation failed: {e!r}")
                return await self._not_taken(
                    gate_context, FAILED, f"generation failed: {e}", intent.spark
                )

            decision = decision.with_content(text)
            safety = await self.content_chain.evaluate(replace(gate_context, decision=decision))
            if not safety.approved:
                return await self._not_taken(gate_context, REJECTED, safety.reason, intent.spark)

        try:
            posted = await asyncio.wait_for(
                self.platform.post_action(decision),
                timeout=self.settings.platform_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Timed out executing {decision.decision_type.value} "
                f"after {self.settings.platform_timeout_seconds}s"
            )
            return await self._not_taken(
                gate_context, FAILED, "execution timed out", intent.spark
            )
        except Exception as e:
            logger.error(f"Failed to execute {decision.decision_type.value}: {e}")
            return await self._not_taken(
                gate_context, FAILED, f"execution failed: {e}", intent.spark
            )

        # Only now, with the platform's confirmation, does the action exist
        return await self._record_executed(gate_context, decision, posted.artifact_id, intent.spark)

    async def _record_executed(
        self,
        gate_context: GateContext,
        decision: Decision,
        artifact_id: Optional[str],
        spark: Optional[float],
    ) -> StimulusResult:
        stimulus = gate_context.stimulus
        context = gate_context.agent
        reasoning = gate_context.classification.reasoning
        if spark is not None:
            reasoning += f", spark {spark:.1f}"

        event = self.state.record_event(context, decision, reasoning, stimulus=stimulus)
        await self.store.save_event(event)

        outcome_id = await self.scheduler.create_pending(ExecutedAction(
            decision=decision,
            state=context.state,
            event_id=event.event_id,
            artifact_id=artifact_id,
            author_id=stimulus.author_id if stimulus else None,
            topic=gate_context.topic or detect_topic(decision.content),
        ))
        event.attach_outcome(outcome_id)

        if stimulus is not None:
            await self.relationships.record_interaction(stimulus, context.state)

        await self._emit(decision, event)
        return StimulusResult(
            status=EXECUTED,
            context=context,
            classification=gate_context.classification,
            decision=decision,
            reason=reasoning,
            stimulus=stimulus,
            event=event,
            outcome_id=outcome_id,
            spark=spark,
        )

    async def _not_taken(
        self,
        gate_context: GateContext,
        status: str,
        reason: str,
        spark: Optional[float],
    ) -> StimulusResult:
        stimulus = gate_context.stimulus
        decision = Decision.skip(
            target_id=stimulus.stimulus_id if stimulus else None,
            reasoning=f"{gate_context.decision.decision_type.value} not taken: {reason}",
        )
        event = self.state.record_event(
            gate_context.agent,
            decision,
            f"{gate_context.classification.reasoning}; {reason}",
            stimulus=stimulus,
        )
        await self.store.save_event(event)
        await self._emit(None, event)
        return StimulusResult(
            status=status,
            context=gate_context.agent,
            classification=gate_context.classification,
            decision=decision,
            reason=reason,
            stimulus=stimulus,
            event=event,
            spark=spark,
        )

    async def _emit(self, decision: Optional[Decision], event: EmotionalEvent) -> None:
        try:
            if decision is not None and self.on_decision is not None:
                await self.on_decision(decision)
            if self.on_event is not None:
                await self.on_event(event)
        except Exception as e:
            logger.error(f"Decision/event callback failed: {e}")

    # Outcomes
    async def poll_outcomes(self, limit: Optional[int] = None) -> DrainResult:
        return await self.scheduler.drain_due(
            limit or self.settings.outcome_drain_limit,
            self.platform.fetch_metrics,
        )

    async def _learn_from_outcome(self, outcome: PendingOutcome) -> None:
        # Fixed like scores and the no-metrics default measure nothing
        if outcome.action_type == DecisionType.LIKE or outcome.latest_metrics is None:
            return
        await self.topics.record_outcome(outcome.topic, outcome.outcome_score)
        await self.relationships.record_outcome(outcome.author_id, outcome.outcome_score)
