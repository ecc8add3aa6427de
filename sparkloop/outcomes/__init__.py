"""Deferred outcome evaluation and scoring."""

from .scheduler import (
    DrainResult,
    ExecutedAction,
    OutcomeScheduler,
    OutcomeStats,
    SchedulerConfig,
)
from .scoring import ACTION_WEIGHTS, LIKE_SCORE, NEUTRAL_SCORE, ScoreWeights, score_outcome

__all__ = [
    "DrainResult",
    "ExecutedAction",
    "OutcomeScheduler",
    "OutcomeStats",
    "SchedulerConfig",
    "ACTION_WEIGHTS",
    "LIKE_SCORE",
    "NEUTRAL_SCORE",
    "ScoreWeights",
    "score_outcome",
]
