"""Feedback learning: outcome patterns, topic weights and relationships."""

from .patterns import PatternAggregator
from .relationships import RelationshipTracker
from .topics import TopicWeights, detect_topic, TOPIC_KEYWORDS

__all__ = [
    "PatternAggregator",
    "RelationshipTracker",
    "TopicWeights",
    "detect_topic",
    "TOPIC_KEYWORDS",
]
