"""Core data models for the sparkloop agent."""

from .decision import Decision, DecisionType
from .emotion import (
    AgentContext,
    Classification,
    EmotionalProfile,
    EmotionalState,
    EMOTIONAL_PROFILES,
    DEFAULT_STATE,
    MIN_INTENSITY,
    MAX_INTENSITY,
)
from .event import EmotionalEvent
from .outcome import EngagementMetrics, OutcomeStatus, PendingOutcome
from .pattern import Pattern, PatternLookup, pattern_key
from .reviews import ComposedPost, GuardrailReview, PrincipleReview, ScoutReport
from .stimulus import Relationship, Stimulus, StimulusType

__all__ = [
    # Decisions
    "Decision",
    "DecisionType",
    # Emotion
    "AgentContext",
    "Classification",
    "EmotionalProfile",
    "EmotionalState",
    "EMOTIONAL_PROFILES",
    "DEFAULT_STATE",
    "MIN_INTENSITY",
    "MAX_INTENSITY",
    "EmotionalEvent",
    # Outcomes
    "EngagementMetrics",
    "OutcomeStatus",
    "PendingOutcome",
    "Pattern",
    "PatternLookup",
    "pattern_key",
    # Completion schemas
    "ComposedPost",
    "GuardrailReview",
    "PrincipleReview",
    "ScoutReport",
    # Stimuli
    "Relationship",
    "Stimulus",
    "StimulusType",
]
