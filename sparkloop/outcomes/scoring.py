"""
Outcome scoring - turns observed engagement into a 0-1 score.

Weights are per engagement unit and differ by action type: conversational
actions value replies far above likes, broadcast posts value reach.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.decision import DecisionType
from ..models.outcome import EngagementMetrics

NEUTRAL_SCORE = 0.3       # Completed but unverifiable
LIKE_SCORE = 0.4          # Likes have no downstream metric to measure
CONVERSATION_BONUS = 0.1  # Any reply at all means a conversation happened
IMPRESSION_CAP = 1.0      # Impressions contribute at most cap * weight


@dataclass(frozen=True)
class ScoreWeights:
    """Contribution of one unit of each engagement signal."""
    likes: float
    replies: float
    retweets: float
    impressions: float


ACTION_WEIGHTS: dict[DecisionType, ScoreWeights] = {
    DecisionType.REPLY: ScoreWeights(likes=0.01, replies=0.08, retweets=0.03, impressions=0.05),
    DecisionType.QUOTE: ScoreWeights(likes=0.012, replies=0.06, retweets=0.04, impressions=0.05),
    DecisionType.ORIGINAL_POST: ScoreWeights(
        likes=0.015, replies=0.03, retweets=0.04, impressions=0.05
    ),
}


def score_outcome(
    action_type: DecisionType,
    metrics: Optional[EngagementMetrics],
) -> float:
    """
    Score an executed action from its latest metrics.

    Monotonically non-decreasing in every signal and always within [0, 1].
    """
    if action_type == DecisionType.LIKE:
        return LIKE_SCORE

    if metrics is None:
        return NEUTRAL_SCORE

    weights = ACTION_WEIGHTS.get(action_type, ACTION_WEIGHTS[DecisionType.REPLY])

    likes = max(0, metrics.likes)
    replies = max(0, metrics.replies)
    retweets = max(0, metrics.retweets)
    impressions = max(0, metrics.impressions)

    score = NEUTRAL_SCORE
    score += likes * weights.likes
    score += replies * weights.replies
    score += retweets * weights.retweets
    score += min(impressions / 1000, IMPRESSION_CAP) * weights.impressions

    if replies > 0:
        score += CONVERSATION_BONUS

    return max(0.0, min(1.0, score))
