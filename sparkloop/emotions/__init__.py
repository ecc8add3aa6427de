"""Emotional state machine: classification and the current-state store."""

from .classifier import StimulusClassifier, STATE_TRIGGERS, DOMAIN_KEYWORDS
from .state import EmotionalStateStore, prompt_modifier

__all__ = [
    "StimulusClassifier",
    "STATE_TRIGGERS",
    "DOMAIN_KEYWORDS",
    "EmotionalStateStore",
    "prompt_modifier",
]
