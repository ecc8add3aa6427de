"""
Triage gate - is this stimulus worth engaging with at all?

Computes a 0-10 spark score from the classifier's intensity (or a scout
report, when a scout model is configured) scaled by what the agent has
learned about the topic, the counterparty and the (state, decision) pattern.
It is the cheap first stage: low spark stops the chain before any of the
more expensive reviews run.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional
import logging

from ..learning.patterns import PatternAggregator
from ..learning.relationships import RelationshipTracker
from ..learning.topics import TopicWeights
from ..llm.client import LLMClient
from ..llm.decoding import decode_response
from ..llm.prompts import PromptTemplates, relationship_context
from ..models.decision import Decision, DecisionType
from ..models.emotion import EmotionalState
from ..models.reviews import ScoutReport
from .base import Gate, GateContext, Verdict

logger = logging.getLogger(__name__)

MAX_SPARK = 10.0
EMOTIONAL_BOOST = 1.0
BOOST_INTENSITY = 0.6
# Within this band the classifier's own suggestion is kept over the scout's
SUGGESTION_BAND = (5.0, 7.0)
MIN_LEARNED = 0.5
MAX_LEARNED = 1.5


class TriageGate(Gate):
    """Stage A: spark scoring."""

    name = "triage"

    def __init__(
        self,
        patterns: PatternAggregator,
        topics: TopicWeights,
        threshold: float = 6.0,
        scout: Optional[LLMClient] = None,
    ):
        self.patterns = patterns
        self.topics = topics
        self.threshold = threshold
        self.scout = scout

    def learned_multiplier(self, context: GateContext) -> float:
        """Combined learned scaling, bounded to [0.5, 1.5]."""
        multiplier = (
            self.topics.factor(context.topic)
            * RelationshipTracker.factor(context.relationship)
            * self.patterns.spark_multiplier(
                context.classification.state, context.decision.decision_type
            )
        )
        return max(MIN_LEARNED, min(MAX_LEARNED, multiplier))

    async def _scout_report(self, context: GateContext) -> Optional[ScoutReport]:
        if self.scout is None or context.stimulus is None:
            return None
        prompt = PromptTemplates.scout_report(
            context.stimulus,
            {
                "feeling": context.agent.state.value,
                "intensity": round(context.agent.intensity, 2),
                "topic": context.topic,
                "relationship": relationship_context(context.relationship),
                "learned": self.patterns.learned_context(),
            },
        )
        response = await self.scout.complete(prompt, system=PromptTemplates.SYSTEM_CONTEXT)
        return decode_response(response, ScoutReport)

    async def evaluate(self, context: GateContext) -> Verdict:
        classification = context.classification

        if classification.state == EmotionalState.WARY:
            return Verdict.reject(
                self.name,
                "wary state vetoes engagement",
                guidance="Let this one pass",
                spark=0.0,
            )

        scout = await self._scout_report(context)
        if scout is not None and scout.recommendation == "skip":
            return Verdict.reject(
                self.name,
                f"scout recommended skip: {scout.why or scout.vibe or 'no spark'}",
                spark=scout.spark_level,
            )

        base = scout.spark_level if scout is not None else classification.intensity * 10
        if classification.intensity > BOOST_INTENSITY:
            base += EMOTIONAL_BOOST

        spark = round(max(0.0, min(MAX_SPARK, base * self.learned_multiplier(context))), 1)

        if spark < self.threshold:
            return Verdict.reject(
                self.name,
                f"insufficient spark ({spark:.1f} < {self.threshold:.1f})",
                spark=spark,
            )

        decision_type = self._choose_decision(context.decision.decision_type, scout, spark)
        if not decision_type.is_platform_action:
            return Verdict.reject(
                self.name,
                f"no engagement proposed ({decision_type.value})",
                spark=spark,
            )

        decision = self._retarget(context, decision_type)
        logger.debug(f"Triage spark {spark:.1f} -> {decision_type.value}")
        return Verdict.approve(
            self.name,
            f"spark {spark:.1f}",
            decision=decision,
            spark=spark,
        )

    @staticmethod
    def _choose_decision(
        suggested: DecisionType,
        scout: Optional[ScoutReport],
        spark: float,
    ) -> DecisionType:
        if scout is None or scout.engagement_type is None:
            return suggested
        low, high = SUGGESTION_BAND
        if low <= spark < high and suggested.is_platform_action:
            return suggested
        return DecisionType(scout.engagement_type)

    @staticmethod
    def _retarget(context: GateContext, decision_type: DecisionType) -> Decision:
        if decision_type == context.decision.decision_type:
            return context.decision
        stimulus = context.stimulus
        if decision_type == DecisionType.FOLLOW:
            target = stimulus.author_id if stimulus else None
        else:
            target = stimulus.stimulus_id if stimulus else None
        return replace(context.decision, decision_type=decision_type, target_id=target)
