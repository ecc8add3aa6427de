"""
Stimulus and relationship models.

A Stimulus is an incoming text-bearing item (a mention, a timeline post).
Relationships summarise the agent's history with one counterparty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..clock import parse_timestamp, utcnow


class StimulusType(Enum):
    """Where a stimulus came from."""
    MENTION = "mention"
    TIMELINE = "timeline"
    REPLY = "reply"
    REFLECTION = "reflection"  # Self-initiated, no external author


@dataclass(frozen=True)
class Stimulus:
    """An incoming item the agent must react to. Immutable once received."""
    stimulus_id: str
    text: str
    author_id: str
    stimulus_type: StimulusType = StimulusType.TIMELINE
    author_username: str = ""
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "stimulus_id": self.stimulus_id,
            "text": self.text,
            "author_id": self.author_id,
            "stimulus_type": self.stimulus_type.value,
            "author_username": self.author_username,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Stimulus:
        return cls(
            stimulus_id=data["stimulus_id"],
            text=data.get("text", ""),
            author_id=data.get("author_id", ""),
            stimulus_type=StimulusType(data.get("stimulus_type", "timeline")),
            author_username=data.get("author_username", ""),
            created_at=parse_timestamp(data["created_at"]) if data.get("created_at") else utcnow(),
        )


@dataclass
class Relationship:
    """Rolling summary of interactions with one counterparty."""
    author_id: str
    username: str = ""
    interaction_count: int = 0
    first_interaction: datetime = field(default_factory=utcnow)
    last_interaction: datetime = field(default_factory=utcnow)
    typical_emotion: Optional[str] = None
    vibe_score: float = 0.5  # 0 = keep distance, 1 = kindred spirit

    def to_dict(self) -> dict:
        return {
            "author_id": self.author_id,
            "username": self.username,
            "interaction_count": self.interaction_count,
            "first_interaction": self.first_interaction.isoformat(),
            "last_interaction": self.last_interaction.isoformat(),
            "typical_emotion": self.typical_emotion,
            "vibe_score": self.vibe_score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Relationship:
        return cls(
            author_id=data["author_id"],
            username=data.get("username", ""),
            interaction_count=data.get("interaction_count", 0),
            first_interaction=parse_timestamp(data["first_interaction"]),
            last_interaction=parse_timestamp(data["last_interaction"]),
            typical_emotion=data.get("typical_emotion"),
            vibe_score=data.get("vibe_score", 0.5),
        )
