"""
Topic weighting learned from outcomes.

Each topic starts at a neutral weight and drifts up slowly after good
outcomes and down even more slowly after poor ones. Middling scores
leave it alone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
import logging

if TYPE_CHECKING:
    from ..storage.store import AgentStore

logger = logging.getLogger(__name__)

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "ai_consciousness": ("conscious", "consciousness", "sentient", "aware", "feeling", "experience"),
    "ai_creativity": ("creative", "art", "create", "generate", "artistic", "imagination"),
    "human_ai_connection": ("connection", "relationship", "together", "collaborate", "human-ai"),
    "philosophy_of_mind": ("mind", "philosophy", "think", "thought", "cognition", "understanding"),
    "tech_culture": ("culture", "society", "impact", "future", "change"),
    "learning_in_public": ("learning", "understand", "explain", "confused", "help me"),
    "japanese_tech": ("japan", "japanese", "anime", "robot", "shinto"),
}

DEFAULT_WEIGHT = 0.5
POSITIVE_RATE = 1.05
NEGATIVE_RATE = 0.98
MAX_WEIGHT = 0.95
MIN_WEIGHT = 0.1
POSITIVE_SCORE = 0.5
NEGATIVE_SCORE = 0.3
PREFERENCES_KEY = "topic_weights"


def detect_topic(text: Optional[str]) -> Optional[str]:
    """First topic whose keywords appear in the text."""
    lower = (text or "").lower()
    for topic, keywords in TOPIC_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            return topic
    return None


class TopicWeights:
    """Per-topic interest weights in [0.1, 0.95]."""

    def __init__(self, store: Optional[AgentStore] = None):
        self.store = store
        self.weights: dict[str, float] = {topic: DEFAULT_WEIGHT for topic in TOPIC_KEYWORDS}

    async def load(self) -> None:
        if self.store is None:
            return
        saved = await self.store.load_preferences(PREFERENCES_KEY)
        for topic, weight in saved.items():
            self.weights[topic] = float(weight)

    def weight(self, topic: Optional[str]) -> float:
        if topic is None:
            return DEFAULT_WEIGHT
        return self.weights.get(topic, DEFAULT_WEIGHT)

    def factor(self, topic: Optional[str]) -> float:
        """Spark factor: 1.0 at the neutral weight."""
        return 0.5 + self.weight(topic)

    async def record_outcome(self, topic: Optional[str], score: float) -> None:
        if topic is None:
            return
        current = self.weight(topic)
        if score > POSITIVE_SCORE:
            updated = min(MAX_WEIGHT, current * POSITIVE_RATE)
        elif score < NEGATIVE_SCORE:
            updated = max(MIN_WEIGHT, current * NEGATIVE_RATE)
        else:
            return
        self.weights[topic] = updated
        logger.debug(f"Topic {topic}: {current:.3f} -> {updated:.3f}")

        if self.store is not None:
            await self.store.save_preferences(PREFERENCES_KEY, self.weights)
