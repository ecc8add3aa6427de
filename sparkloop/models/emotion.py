"""
Emotional state models.

The agent is always in exactly one EmotionalState. AgentContext carries the
current state, the previous one and the intensity; it is immutable and is
passed from step to step instead of living on a shared object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..clock import utcnow
from .decision import DecisionType


class EmotionalState(Enum):
    """Closed set of affective labels."""
    CURIOUS = "curious"
    DELIGHTED = "delighted"
    CONFUSED = "confused"
    EXCITED = "excited"
    PLAYFUL = "playful"
    CONTEMPLATIVE = "contemplative"
    APPRECIATIVE = "appreciative"
    WARY = "wary"


@dataclass(frozen=True)
class EmotionalProfile:
    """Static guidance for the text generator."""
    description: str
    energy: str
    voice: str


EMOTIONAL_PROFILES: dict[EmotionalState, EmotionalProfile] = {
    EmotionalState.CURIOUS: EmotionalProfile(
        description="Open, questioning, wants to explore",
        energy="medium",
        voice='asks questions, uses "I wonder...", "What if..."',
    ),
    EmotionalState.DELIGHTED: EmotionalProfile(
        description="Found something that sparks joy",
        energy="high",
        voice="warm, appreciative, playful",
    ),
    EmotionalState.CONFUSED: EmotionalProfile(
        description="Genuinely puzzled, not understanding yet",
        energy="low-medium",
        voice="honest about not knowing, asks for help",
    ),
    EmotionalState.EXCITED: EmotionalProfile(
        description="Pattern recognized, connection spotted",
        energy="high",
        voice='energetic, connective, "This reminds me of..."',
    ),
    EmotionalState.PLAYFUL: EmotionalProfile(
        description="Light, mischievous, enjoying the absurd",
        energy="high",
        voice="jokes, unexpected angles, light touch on heavy topics",
    ),
    EmotionalState.CONTEMPLATIVE: EmotionalProfile(
        description="Going deeper, sitting with ideas",
        energy="low",
        voice='slower, more measured, "I keep coming back to..."',
    ),
    EmotionalState.APPRECIATIVE: EmotionalProfile(
        description="Grateful, recognizing value",
        energy="medium",
        voice="specific thanks, explains WHY it resonated",
    ),
    EmotionalState.WARY: EmotionalProfile(
        description="Something feels off, protecting authenticity",
        energy="low",
        voice="cautious, might skip engagement entirely",
    ),
}

DEFAULT_STATE = EmotionalState.CURIOUS
MIN_INTENSITY = 0.3
MAX_INTENSITY = 0.9


@dataclass(frozen=True)
class AgentContext:
    """The agent's affective disposition at one point in the loop."""
    state: EmotionalState = DEFAULT_STATE
    intensity: float = MIN_INTENSITY
    previous_state: Optional[EmotionalState] = None
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def profile(self) -> EmotionalProfile:
        return EMOTIONAL_PROFILES[self.state]

    def transition(
        self,
        state: EmotionalState,
        intensity: float,
        at: Optional[datetime] = None,
    ) -> AgentContext:
        """Return the context that follows this one."""
        return AgentContext(
            state=state,
            intensity=max(0.0, min(1.0, intensity)),
            previous_state=self.state,
            updated_at=at or utcnow(),
        )

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "intensity": self.intensity,
            "previous_state": self.previous_state.value if self.previous_state else None,
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Classification:
    """Output of the stimulus classifier."""
    state: EmotionalState
    intensity: float
    reasoning: str
    suggested_decision: DecisionType
    trigger_count: int = 0
    domain_count: int = 0

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "intensity": self.intensity,
            "reasoning": self.reasoning,
            "suggested_decision": self.suggested_decision.value,
            "trigger_count": self.trigger_count,
            "domain_count": self.domain_count,
        }
