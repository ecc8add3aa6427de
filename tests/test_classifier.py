"""Tests for the stimulus classifier."""

import pytest

from sparkloop.emotions import StimulusClassifier
from sparkloop.models import DecisionType, EmotionalState


@pytest.fixture
def classifier():
    return StimulusClassifier()


def test_wondering_about_generalization(classifier):
    result = classifier.classify("I wonder why transformers generalize so well")
    assert result.state == EmotionalState.CURIOUS
    assert 0.3 <= result.intensity <= 0.6
    assert result.suggested_decision in (DecisionType.LIKE, DecisionType.REPLY)
    # Two curious triggers, no domain keywords: mid bucket
    assert result.trigger_count == 2
    assert result.suggested_decision == DecisionType.LIKE


@pytest.mark.parametrize("text", ["", None, "   ", 42])
def test_empty_or_odd_input_is_safe(classifier, text):
    result = classifier.classify(text)
    assert result.state == EmotionalState.CURIOUS
    assert result.intensity == 0.3
    assert result.suggested_decision == DecisionType.SKIP


def test_wary_always_skips(classifier):
    result = classifier.classify(
        "This AI hype is a scam, you're wrong and I hate it. Consciousness? Stupid."
    )
    assert result.state == EmotionalState.WARY
    assert result.intensity > 0.5
    assert result.suggested_decision == DecisionType.SKIP


def test_intensity_is_capped(classifier):
    text = (
        "Finally realized the pattern: emergence in neural network systems makes sense, "
        "a breakthrough connection for AI, the brain and the universe"
    )
    result = classifier.classify(text)
    assert result.state == EmotionalState.EXCITED
    assert result.intensity == 0.9
    assert result.suggested_decision == DecisionType.QUOTE


def test_tie_resolves_to_curious(classifier):
    # One curious trigger ("wonder") and one playful trigger ("lol")
    result = classifier.classify("lol I wonder")
    assert result.trigger_count == 1
    assert result.state == EmotionalState.CURIOUS


def test_matching_is_case_insensitive(classifier):
    result = classifier.classify("LOL, IMAGINE IF that were true")
    assert result.state == EmotionalState.PLAYFUL
    assert result.trigger_count == 2


def test_reasoning_names_state_and_counts(classifier):
    result = classifier.classify("thank you, I appreciate the perspective")
    assert result.state == EmotionalState.APPRECIATIVE
    assert "appreciative" in result.reasoning
    assert "domain relevance: 0" in result.reasoning


class TestIntensity:

    def test_formula(self):
        assert StimulusClassifier.intensity_for(0, 0) == 0.3
        assert StimulusClassifier.intensity_for(2, 0) == 0.6
        assert StimulusClassifier.intensity_for(1, 2) == 0.65

    def test_never_exceeds_cap(self):
        assert StimulusClassifier.intensity_for(10, 10) == 0.9

    def test_monotonic_in_matches(self):
        values = [StimulusClassifier.intensity_for(n, 1) for n in range(6)]
        assert values == sorted(values)


class TestDecisionTable:

    @pytest.mark.parametrize("state,intensity,expected", [
        (EmotionalState.CURIOUS, 0.8, DecisionType.REPLY),
        (EmotionalState.CURIOUS, 0.6, DecisionType.LIKE),
        (EmotionalState.CONFUSED, 0.8, DecisionType.REPLY),
        (EmotionalState.EXCITED, 0.8, DecisionType.QUOTE),
        (EmotionalState.DELIGHTED, 0.8, DecisionType.QUOTE),
        (EmotionalState.DELIGHTED, 0.6, DecisionType.REPLY),
        (EmotionalState.APPRECIATIVE, 0.6, DecisionType.LIKE),
        (EmotionalState.PLAYFUL, 0.6, DecisionType.REPLY),
        (EmotionalState.CONTEMPLATIVE, 0.8, DecisionType.REPLY),
        (EmotionalState.CONTEMPLATIVE, 0.6, DecisionType.RESEARCH),
        (EmotionalState.CURIOUS, 0.5, DecisionType.SKIP),
        (EmotionalState.WARY, 0.9, DecisionType.SKIP),
    ])
    def test_lookup(self, state, intensity, expected):
        assert StimulusClassifier.suggest_decision(state, intensity) == expected
