"""
Relationship tracking - who the agent has talked to and how it went.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
import logging

from ..clock import Clock, utcnow
from ..models.emotion import EmotionalState
from ..models.stimulus import Relationship, Stimulus

if TYPE_CHECKING:
    from ..storage.store import AgentStore

logger = logging.getLogger(__name__)

VIBE_GAIN = 0.05
VIBE_LOSS = 0.02
POSITIVE_SCORE = 0.5
NEGATIVE_SCORE = 0.3


class RelationshipTracker:
    """Per-counterparty rolling summaries, created on first interaction."""

    def __init__(self, store: AgentStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def get(self, author_id: Optional[str]) -> Optional[Relationship]:
        if not author_id:
            return None
        return await self.store.get_relationship(author_id)

    async def record_interaction(
        self,
        stimulus: Stimulus,
        state: EmotionalState,
    ) -> Relationship:
        now = self.clock()
        relationship = await self.store.get_relationship(stimulus.author_id)

        if relationship is None:
            relationship = Relationship(
                author_id=stimulus.author_id,
                username=stimulus.author_username,
                interaction_count=1,
                first_interaction=now,
                last_interaction=now,
                typical_emotion=state.value,
            )
            logger.info(f"New relationship with @{stimulus.author_username or stimulus.author_id}")
        else:
            relationship.interaction_count += 1
            relationship.last_interaction = now
            relationship.typical_emotion = state.value
            if stimulus.author_username:
                relationship.username = stimulus.author_username

        await self.store.save_relationship(relationship)
        return relationship

    async def record_outcome(self, author_id: Optional[str], score: float) -> None:
        """Nudge the vibe score after an outcome with this person is scored."""
        relationship = await self.get(author_id)
        if relationship is None:
            return
        if score > POSITIVE_SCORE:
            relationship.vibe_score = min(1.0, relationship.vibe_score + VIBE_GAIN)
        elif score < NEGATIVE_SCORE:
            relationship.vibe_score = max(0.0, relationship.vibe_score - VIBE_LOSS)
        else:
            return
        await self.store.save_relationship(relationship)

    @staticmethod
    def factor(relationship: Optional[Relationship]) -> float:
        """Spark factor: 1.0 for strangers and neutral relationships."""
        vibe = relationship.vibe_score if relationship else 0.5
        return 0.7 + vibe * 0.6
