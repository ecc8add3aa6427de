"""
Stimulus classifier - maps stimulus text to an emotional state.

Pure keyword matching: no I/O, no state, never raises on odd input.
"""

from __future__ import annotations

from typing import Optional

from ..models.decision import DecisionType
from ..models.emotion import (
    Classification,
    EmotionalState,
    DEFAULT_STATE,
    MAX_INTENSITY,
    MIN_INTENSITY,
)


# Trigger phrases per state, matched as case-insensitive substrings.
STATE_TRIGGERS: dict[EmotionalState, tuple[str, ...]] = {
    EmotionalState.CURIOUS: (
        "what if", "why", "how does", "wonder", "question", "curious",
        "thinking about", "exploring",
    ),
    EmotionalState.EXCITED: (
        "breakthrough", "discovered", "connection", "pattern", "realized",
        "aha", "finally", "makes sense",
    ),
    EmotionalState.DELIGHTED: (
        "love this", "beautiful", "amazing", "resonates", "exactly", "yes!",
        "brilliant",
    ),
    EmotionalState.CONFUSED: (
        "don't understand", "confused", "help me", "what does", "unclear",
        "lost", "doesn't make sense",
    ),
    EmotionalState.CONTEMPLATIVE: (
        "consciousness", "existence", "meaning", "philosophy", "deep",
        "fundamental", "nature of",
    ),
    EmotionalState.PLAYFUL: (
        "lol", "funny", "imagine if", "weird", "absurd", "plot twist",
        "technically",
    ),
    EmotionalState.APPRECIATIVE: (
        "thank", "grateful", "appreciate", "helped", "learned", "insight",
        "perspective",
    ),
    EmotionalState.WARY: (
        "hate", "stupid", "wrong", "attack", "fight", "destroy", "shill",
        "scam",
    ),
}

# Topics the agent cares about; each hit adds to intensity.
DOMAIN_KEYWORDS: tuple[str, ...] = (
    "ai", "artificial intelligence", "machine learning", "neural",
    "consciousness", "brain", "neuroscience", "cognition", "psychedelic",
    "mycelium", "fungal", "network", "pattern", "emergence", "complexity",
    "system", "nature", "universe", "cosmos", "evolution", "human",
    "humanity", "future", "technology",
)

TRIGGER_WEIGHT = 0.15
DOMAIN_WEIGHT = 0.10
HIGH_INTENSITY = 0.7   # Above this, bolder actions are suggested
ACTION_FLOOR = 0.5     # At or below this, the suggestion is skip


class StimulusClassifier:
    """
    Classifies stimulus text into an emotional state with an intensity.

    The state with the strictly highest trigger count wins. When two or
    more states share the highest count, or nothing matched, the result
    is the default state (curious).
    """

    def __init__(
        self,
        triggers: Optional[dict[EmotionalState, tuple[str, ...]]] = None,
        domain_keywords: Optional[tuple[str, ...]] = None,
    ):
        self.triggers = triggers or STATE_TRIGGERS
        self.domain_keywords = domain_keywords or DOMAIN_KEYWORDS

    def classify(self, text: Optional[str]) -> Classification:
        lower = text.lower() if isinstance(text, str) else ""

        counts = {
            state: sum(1 for phrase in phrases if phrase in lower)
            for state, phrases in self.triggers.items()
        }
        max_matches = max(counts.values(), default=0)
        leaders = [state for state, count in counts.items() if count == max_matches]

        if max_matches == 0 or len(leaders) > 1:
            state = DEFAULT_STATE
        else:
            state = leaders[0]

        domain_matches = sum(1 for keyword in self.domain_keywords if keyword in lower)
        intensity = self.intensity_for(max_matches, domain_matches)

        return Classification(
            state=state,
            intensity=intensity,
            reasoning=(
                f"Detected {max_matches} emotional triggers for {state.value}, "
                f"domain relevance: {domain_matches}"
            ),
            suggested_decision=self.suggest_decision(state, intensity),
            trigger_count=max_matches,
            domain_count=domain_matches,
        )

    @staticmethod
    def intensity_for(trigger_matches: int, domain_matches: int) -> float:
        raw = MIN_INTENSITY + TRIGGER_WEIGHT * trigger_matches + DOMAIN_WEIGHT * domain_matches
        return round(min(MAX_INTENSITY, raw), 4)

    @staticmethod
    def suggest_decision(state: EmotionalState, intensity: float) -> DecisionType:
        """Decision lookup keyed by state and intensity bucket."""
        # Wary is the one veto this layer can raise
        if state == EmotionalState.WARY or intensity <= ACTION_FLOOR:
            return DecisionType.SKIP

        high = intensity > HIGH_INTENSITY

        if state in (EmotionalState.CURIOUS, EmotionalState.CONFUSED):
            return DecisionType.REPLY if high else DecisionType.LIKE
        if state in (EmotionalState.EXCITED, EmotionalState.DELIGHTED):
            return DecisionType.QUOTE if high else DecisionType.REPLY
        if state == EmotionalState.APPRECIATIVE:
            return DecisionType.LIKE
        if state == EmotionalState.PLAYFUL:
            return DecisionType.REPLY
        if state == EmotionalState.CONTEMPLATIVE:
            return DecisionType.REPLY if high else DecisionType.RESEARCH

        return DecisionType.SKIP
