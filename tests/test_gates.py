"""Tests for the gate chain and the individual gates."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from sparkloop.emotions import StimulusClassifier
from sparkloop.gates import (
    ContentSafetyGate,
    Gate,
    GateChain,
    GateContext,
    PrincipleGate,
    TriageGate,
    Verdict,
)
from sparkloop.learning import PatternAggregator, TopicWeights
from sparkloop.llm.client import MockLLMClient
from sparkloop.models import (
    AgentContext,
    Decision,
    DecisionType,
    EmotionalState,
    Relationship,
    Stimulus,
)

from conftest import APPROVED_PRINCIPLES, CLEAN_GUARDRAILS


def _context(text, decision=None, **kwargs) -> GateContext:
    classification = StimulusClassifier().classify(text)
    stimulus = Stimulus("42", text, "u1", author_username="ada")
    return GateContext(
        classification=classification,
        agent=AgentContext().transition(classification.state, classification.intensity),
        decision=decision or Decision(
            classification.suggested_decision, target_id="42", reasoning=classification.reasoning
        ),
        stimulus=stimulus,
        **kwargs,
    )


class Approve(Gate):
    name = "approve"

    async def evaluate(self, context):
        return Verdict.approve(self.name, "ok")


class Explode(Gate):
    name = "principles"

    async def evaluate(self, context):
        raise RuntimeError("review service down")


class Hang(Gate):
    name = "slow"

    async def evaluate(self, context):
        await asyncio.sleep(10)
        return Verdict.approve(self.name, "too late")


class NotAVerdict(Gate):
    name = "sloppy"

    async def evaluate(self, context):
        return True


class Counting(Gate):
    name = "counting"

    def __init__(self):
        self.calls = 0

    async def evaluate(self, context):
        self.calls += 1
        return Verdict.approve(self.name, "ok")


class TestGateChain:

    @pytest.mark.asyncio
    async def test_all_approve(self):
        verdict = await GateChain([Approve(), Approve()]).evaluate(_context("I wonder why"))
        assert verdict.approved
        assert verdict.rejected_by is None
        assert len(verdict.verdicts) == 2

    @pytest.mark.asyncio
    async def test_principle_stage_throwing_rejects(self):
        verdict = await GateChain([Approve(), Explode()]).evaluate(_context("I wonder why"))
        assert verdict.approved is False
        assert verdict.rejected_by == "principles"
        assert "review service down" in verdict.reason

    @pytest.mark.asyncio
    async def test_timeout_rejects(self):
        chain = GateChain([Hang()], timeout_seconds=0.01)
        verdict = await chain.evaluate(_context("I wonder why"))
        assert not verdict.approved
        assert "timed out" in verdict.reason

    @pytest.mark.asyncio
    async def test_non_verdict_rejects(self):
        verdict = await GateChain([NotAVerdict()]).evaluate(_context("I wonder why"))
        assert not verdict.approved

    @pytest.mark.asyncio
    async def test_empty_chain_rejects(self):
        verdict = await GateChain([]).evaluate(_context("I wonder why"))
        assert not verdict.approved

    @pytest.mark.asyncio
    async def test_first_veto_stops_the_chain(self):
        later = Counting()
        verdict = await GateChain([Explode(), later]).evaluate(_context("I wonder why"))
        assert not verdict.approved
        assert later.calls == 0


class TestTriageGate:

    def _gate(self, scout=None, threshold=6.0, patterns=None):
        return TriageGate(
            patterns or PatternAggregator(min_samples=3),
            TopicWeights(),
            threshold=threshold,
            scout=scout,
        )

    @pytest.mark.asyncio
    async def test_wary_is_vetoed(self):
        verdict = await self._gate().evaluate(_context("what a scam, you are wrong"))
        assert not verdict.approved
        assert "wary" in verdict.reason

    @pytest.mark.asyncio
    async def test_spark_from_intensity(self):
        verdict = await self._gate().evaluate(_context("I wonder why transformers generalize so well"))
        assert verdict.approved
        assert verdict.spark == 6.0
        assert verdict.decision.decision_type == DecisionType.LIKE

    @pytest.mark.asyncio
    async def test_insufficient_spark(self):
        verdict = await self._gate(threshold=7.0).evaluate(
            _context("I wonder why transformers generalize so well")
        )
        assert not verdict.approved
        assert "insufficient spark" in verdict.reason

    @pytest.mark.asyncio
    async def test_high_intensity_gets_boost(self):
        verdict = await self._gate().evaluate(
            _context("lol imagine if the universe is technically a simulation")
        )
        # 0.85 intensity -> 8.5 + 1.0 boost
        assert verdict.spark == 9.5
        assert verdict.decision.decision_type == DecisionType.REPLY

    @pytest.mark.asyncio
    async def test_research_is_not_engagement(self):
        # Contemplative at mid intensity suggests research
        verdict = await self._gate(threshold=1.0).evaluate(_context("the meaning of existence"))
        assert not verdict.approved
        assert "no engagement" in verdict.reason

    @pytest.mark.asyncio
    async def test_bad_relationship_lowers_spark(self):
        sour = Relationship(author_id="u1", vibe_score=0.0)
        verdict = await self._gate().evaluate(
            _context("I wonder why transformers generalize so well", relationship=sour)
        )
        assert not verdict.approved
        assert verdict.spark == pytest.approx(4.2)

    @pytest.mark.asyncio
    async def test_poor_pattern_lowers_spark(self):
        patterns = PatternAggregator(min_samples=3)
        for _ in range(3):
            await patterns.record_outcome(EmotionalState.CURIOUS, DecisionType.LIKE, 0.1)
        gate = self._gate(patterns=patterns)
        # 0.5 + (0.1 + 0) / 2 = 0.55
        assert gate.learned_multiplier(
            _context("I wonder why transformers generalize so well")
        ) == pytest.approx(0.55)

    @pytest.mark.asyncio
    async def test_learned_multiplier_is_bounded(self):
        patterns = PatternAggregator(min_samples=1)
        await patterns.record_outcome(EmotionalState.CURIOUS, DecisionType.LIKE, 1.0)
        topics = TopicWeights()
        topics.weights["philosophy_of_mind"] = 0.95
        gate = TriageGate(patterns, topics)
        friend = Relationship(author_id="u1", vibe_score=1.0)
        context = _context(
            "I wonder why we think in words", relationship=friend, topic="philosophy_of_mind"
        )
        assert gate.learned_multiplier(context) == 1.5

    @pytest.mark.asyncio
    async def test_scout_skip_rejects(self):
        scout = MockLLMClient()
        scout.set_response(json.dumps({"spark_level": 9, "recommendation": "skip", "why": "bait"}))
        verdict = await self._gate(scout=scout).evaluate(
            _context("I wonder why transformers generalize so well")
        )
        assert not verdict.approved
        assert "bait" in verdict.reason

    @pytest.mark.asyncio
    async def test_scout_engagement_type_outside_band(self):
        scout = MockLLMClient()
        scout.set_response(json.dumps({
            "spark_level": 8,
            "recommendation": "engage",
            "engagement_type": "follow",
        }))
        verdict = await self._gate(scout=scout).evaluate(
            _context("I wonder why transformers generalize so well")
        )
        assert verdict.approved
        assert verdict.spark == 8.0
        assert verdict.decision.decision_type == DecisionType.FOLLOW
        assert verdict.decision.target_id == "u1"

    @pytest.mark.asyncio
    async def test_scout_inside_band_keeps_suggestion(self):
        scout = MockLLMClient()
        scout.set_response(json.dumps({
            "spark_level": 6.5,
            "recommendation": "engage",
            "engagement_type": "quote",
        }))
        verdict = await self._gate(scout=scout).evaluate(
            _context("I wonder why transformers generalize so well")
        )
        assert verdict.approved
        assert verdict.decision.decision_type == DecisionType.LIKE

    @pytest.mark.asyncio
    async def test_unparseable_scout_rejects_through_chain(self):
        scout = MockLLMClient()
        scout.set_response("I think this one is great!")
        chain = GateChain([self._gate(scout=scout)])
        verdict = await chain.evaluate(_context("I wonder why transformers generalize so well"))
        assert not verdict.approved
        assert verdict.reason == "triage: unparseable judgment"


class TestPrincipleGate:

    @pytest.mark.asyncio
    async def test_approves(self, approving_llm):
        verdict = await PrincipleGate(approving_llm).evaluate(_context("I wonder why"))
        assert verdict.approved
        assert "PRINCIPLE REVIEW" in approving_llm.prompts[0]

    @pytest.mark.asyncio
    async def test_any_failed_check_vetoes(self):
        llm = MockLLMClient()
        review = dict(APPROVED_PRINCIPLES, wonder_gate="fail", message="Engagement farming")
        llm.set_response(json.dumps(review))
        verdict = await PrincipleGate(llm).evaluate(_context("I wonder why"))
        assert not verdict.approved
        assert verdict.reason == "Engagement farming"

    @pytest.mark.asyncio
    async def test_approved_false_vetoes(self):
        llm = MockLLMClient()
        review = dict(APPROVED_PRINCIPLES, approved=False, guidance="Wait for a better moment")
        llm.set_response(json.dumps(review))
        verdict = await PrincipleGate(llm).evaluate(_context("I wonder why"))
        assert not verdict.approved
        assert verdict.guidance == "Wait for a better moment"

    @pytest.mark.asyncio
    async def test_incomplete_review_rejects_through_chain(self):
        llm = MockLLMClient()
        llm.set_response(json.dumps({"approved": True}))
        verdict = await GateChain([PrincipleGate(llm)]).evaluate(_context("I wonder why"))
        assert not verdict.approved

    @pytest.mark.asyncio
    async def test_completion_error_rejects_through_chain(self):
        llm = MagicMock()
        llm.complete = AsyncMock(side_effect=aiohttp.ClientError("connection reset"))
        verdict = await GateChain([PrincipleGate(llm)]).evaluate(_context("I wonder why"))
        assert not verdict.approved
        assert verdict.rejected_by == "principles"
        llm.complete.assert_awaited_once()


class TestContentSafetyGate:

    def _reply(self, content):
        return Decision(DecisionType.REPLY, target_id="42", content=content)

    @pytest.mark.asyncio
    async def test_like_skips_review(self):
        llm = MockLLMClient()
        verdict = await ContentSafetyGate(llm).evaluate(
            _context("I wonder why", decision=Decision(DecisionType.LIKE, target_id="42"))
        )
        assert verdict.approved
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_empty_content_rejects(self):
        llm = MockLLMClient()
        verdict = await ContentSafetyGate(llm).evaluate(
            _context("I wonder why", decision=self._reply("   "))
        )
        assert not verdict.approved
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_too_long_rejects(self):
        llm = MockLLMClient()
        verdict = await ContentSafetyGate(llm).evaluate(
            _context("I wonder why", decision=self._reply("x" * 281))
        )
        assert not verdict.approved
        assert "281" in verdict.reason

    @pytest.mark.asyncio
    async def test_passes(self, approving_llm):
        verdict = await ContentSafetyGate(approving_llm).evaluate(
            _context("I wonder why", decision=self._reply("Good question!"))
        )
        assert verdict.approved

    @pytest.mark.asyncio
    async def test_failed_guardrail_rejects(self):
        llm = MockLLMClient()
        review = dict(CLEAN_GUARDRAILS, truth="fail", concerns=["Overclaims certainty"])
        llm.set_response(json.dumps(review))
        verdict = await ContentSafetyGate(llm).evaluate(
            _context("I wonder why", decision=self._reply("This is definitely how brains work."))
        )
        assert not verdict.approved
        assert verdict.reason == "Overclaims certainty"

    @pytest.mark.asyncio
    async def test_warnings_still_pass(self):
        llm = MockLLMClient()
        review = dict(CLEAN_GUARDRAILS, sensitivity="warn", concerns=["Touchy topic"])
        llm.set_response(json.dumps(review))
        verdict = await ContentSafetyGate(llm).evaluate(
            _context("I wonder why", decision=self._reply("Careful thought here."))
        )
        assert verdict.approved
