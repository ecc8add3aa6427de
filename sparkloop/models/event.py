"""
Emotional event log records.

One EmotionalEvent is written per processed stimulus. Events are never
changed afterwards except to attach the id of the outcome that scored them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import uuid

from ..clock import parse_timestamp, utcnow
from .decision import Decision
from .emotion import EmotionalState


@dataclass
class EmotionalEvent:
    """What the agent felt about a stimulus and what it did."""
    event_id: str
    stimulus_id: Optional[str]
    state: EmotionalState
    intensity: float
    decision: Decision
    previous_state: Optional[EmotionalState] = None
    reasoning: str = ""
    stimulus_text: str = ""
    author_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    outcome_id: Optional[str] = None

    @staticmethod
    def generate_id() -> str:
        return f"evt_{uuid.uuid4().hex[:12]}"

    def attach_outcome(self, outcome_id: str) -> None:
        if self.outcome_id and self.outcome_id != outcome_id:
            raise ValueError(f"Event {self.event_id} already has outcome {self.outcome_id}")
        self.outcome_id = outcome_id

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "stimulus_id": self.stimulus_id,
            "state": self.state.value,
            "intensity": self.intensity,
            "decision": self.decision.to_dict(),
            "decision_type": self.decision.decision_type.value,
            "previous_state": self.previous_state.value if self.previous_state else None,
            "reasoning": self.reasoning,
            "stimulus_text": self.stimulus_text,
            "author_id": self.author_id,
            "created_at": self.created_at.isoformat(),
            "outcome_id": self.outcome_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> EmotionalEvent:
        previous = data.get("previous_state")
        return cls(
            event_id=data["event_id"],
            stimulus_id=data.get("stimulus_id"),
            state=EmotionalState(data["state"]),
            intensity=data["intensity"],
            decision=Decision.from_dict(data["decision"]),
            previous_state=EmotionalState(previous) if previous else None,
            reasoning=data.get("reasoning", ""),
            stimulus_text=data.get("stimulus_text", ""),
            author_id=data.get("author_id"),
            created_at=parse_timestamp(data["created_at"]),
            outcome_id=data.get("outcome_id"),
        )
