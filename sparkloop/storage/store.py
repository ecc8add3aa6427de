"""
Agent store - persistence for events, outcomes, patterns and relationships.

Read failures return empty or neutral defaults and write failures are logged
and swallowed, so a degraded store slows learning down but never stops the
agent. The one exception is claim_outcome, which reports "not claimed" on
any error.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
import logging

from ..exceptions import InvalidTransition
from ..models.event import EmotionalEvent
from ..models.outcome import OutcomeStatus, PendingOutcome
from ..models.pattern import Pattern
from ..models.stimulus import Relationship
from .backends import InMemoryBackend, StorageBackend

logger = logging.getLogger(__name__)

EVENTS = "emotional_events"
OUTCOMES = "pending_outcomes"
PATTERNS = "emotional_patterns"
RELATIONSHIPS = "relationships"
PREFERENCES = "preferences"


class AgentStore:
    """Typed facade over a StorageBackend."""

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend or InMemoryBackend()

    async def _save(self, collection: str, key: str, data: dict) -> bool:
        try:
            await self.backend.save(collection, key, data)
            return True
        except Exception as e:
            logger.error(f"Failed to save {collection}/{key}: {e}")
            return False

    async def _load(self, collection: str, key: str) -> Optional[dict]:
        try:
            return await self.backend.load(collection, key)
        except Exception as e:
            logger.error(f"Failed to load {collection}/{key}: {e}")
            return None

    async def _query(
        self,
        collection: str,
        filters: dict,
        limit: Optional[int] = None,
    ) -> list[dict]:
        try:
            return await self.backend.query(collection, filters, limit=limit)
        except Exception as e:
            logger.error(f"Failed to query {collection}: {e}")
            return []

    # Emotional events
    async def save_event(self, event: EmotionalEvent) -> bool:
        return await self._save(EVENTS, event.event_id, event.to_dict())

    async def get_event(self, event_id: str) -> Optional[EmotionalEvent]:
        data = await self._load(EVENTS, event_id)
        return EmotionalEvent.from_dict(data) if data else None

    async def recent_events(self, limit: int = 20) -> list[EmotionalEvent]:
        rows = await self._query(EVENTS, {})
        events = [EmotionalEvent.from_dict(row) for row in rows]
        events.sort(key=lambda e: e.created_at, reverse=True)
        return events[:limit]

    async def latest_event(self) -> Optional[EmotionalEvent]:
        events = await self.recent_events(limit=1)
        return events[0] if events else None

    async def attach_outcome(self, event_id: str, outcome_id: str) -> None:
        event = await self.get_event(event_id)
        if event is None:
            logger.warning(f"Cannot attach outcome {outcome_id}: event {event_id} not found")
            return
        try:
            event.attach_outcome(outcome_id)
        except ValueError as e:
            logger.warning(str(e))
            return
        await self.save_event(event)

    # Pending outcomes
    async def save_outcome(self, outcome: PendingOutcome) -> bool:
        return await self._save(OUTCOMES, outcome.outcome_id, outcome.to_dict())

    async def get_outcome(self, outcome_id: str) -> Optional[PendingOutcome]:
        data = await self._load(OUTCOMES, outcome_id)
        return PendingOutcome.from_dict(data) if data else None

    async def outcomes_by_status(self, status: OutcomeStatus) -> list[PendingOutcome]:
        rows = await self._query(OUTCOMES, {"status": status.value})
        return [PendingOutcome.from_dict(row) for row in rows]

    async def due_outcomes(self, now: datetime, limit: int) -> list[PendingOutcome]:
        """Pending records whose check_after has passed, oldest first."""
        pending = await self.outcomes_by_status(OutcomeStatus.PENDING)
        due = [o for o in pending if o.is_due(now)]
        due.sort(key=lambda o: o.check_after)
        return due[:limit]

    async def claim_outcome(
        self,
        outcome: PendingOutcome,
        now: datetime,
    ) -> Optional[PendingOutcome]:
        """
        Atomically move a record from pending to evaluating.

        Returns the claimed record, or None when another drain got there
        first, the record is not due, or the store failed.
        """
        claimed = PendingOutcome.from_dict(outcome.to_dict())
        try:
            claimed.mark_evaluating(now)
        except InvalidTransition as e:
            logger.debug(f"Not claiming {outcome.outcome_id}: {e}")
            return None

        expected = {"status": OutcomeStatus.PENDING.value, "attempts": outcome.attempts}
        try:
            ok = await self.backend.compare_and_set(
                OUTCOMES, outcome.outcome_id, expected, claimed.to_dict()
            )
        except Exception as e:
            logger.error(f"Failed to claim outcome {outcome.outcome_id}: {e}")
            return None

        return claimed if ok else None

    # Patterns
    async def save_pattern(self, pattern: Pattern) -> bool:
        return await self._save(PATTERNS, pattern.key, pattern.to_dict())

    async def load_patterns(self) -> list[Pattern]:
        rows = await self._query(PATTERNS, {})
        return [Pattern.from_dict(row) for row in rows]

    # Relationships
    async def save_relationship(self, relationship: Relationship) -> bool:
        return await self._save(RELATIONSHIPS, relationship.author_id, relationship.to_dict())

    async def get_relationship(self, author_id: str) -> Optional[Relationship]:
        data = await self._load(RELATIONSHIPS, author_id)
        return Relationship.from_dict(data) if data else None

    # Learned preferences (topic weights and the like)
    async def save_preferences(self, name: str, values: dict[str, Any]) -> bool:
        return await self._save(PREFERENCES, name, {"name": name, "values": values})

    async def load_preferences(self, name: str) -> dict[str, Any]:
        data = await self._load(PREFERENCES, name)
        return dict(data.get("values", {})) if data else {}
