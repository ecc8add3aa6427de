"""
Emotional state store.

Holds the latest AgentContext between stimuli. Processing steps receive a
context and return the next one; the engine commits it here once a stimulus
is finished, so no step ever mutates shared state mid-flight.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
import logging

from ..clock import Clock, utcnow
from ..models.decision import Decision
from ..models.emotion import AgentContext, EmotionalState
from ..models.event import EmotionalEvent
from ..models.stimulus import Stimulus

if TYPE_CHECKING:
    from ..storage.store import AgentStore

logger = logging.getLogger(__name__)


class EmotionalStateStore:
    """Owner of the single current/previous state pair."""

    def __init__(self, initial: Optional[AgentContext] = None, clock: Clock = utcnow):
        self.clock = clock
        self._context = initial or AgentContext(updated_at=clock())

    @property
    def current(self) -> AgentContext:
        return self._context

    def commit(self, context: AgentContext) -> None:
        """Adopt the context produced by a finished processing step."""
        if context.state != self._context.state:
            logger.info(
                f"Emotional state {self._context.state.value} -> {context.state.value} "
                f"({context.intensity:.2f})"
            )
        self._context = context

    def set_state(self, state: EmotionalState, intensity: float) -> AgentContext:
        """Manually move to a state, e.g. before composing an original post."""
        self._context = self._context.transition(state, intensity, at=self.clock())
        return self._context

    def record_event(
        self,
        context: AgentContext,
        decision: Decision,
        reasoning: str,
        stimulus: Optional[Stimulus] = None,
    ) -> EmotionalEvent:
        """Build the log record for a processed stimulus from its context."""
        return EmotionalEvent(
            event_id=EmotionalEvent.generate_id(),
            stimulus_id=stimulus.stimulus_id if stimulus else None,
            state=context.state,
            intensity=context.intensity,
            decision=decision,
            previous_state=context.previous_state,
            reasoning=reasoning,
            stimulus_text=stimulus.text if stimulus else "",
            author_id=stimulus.author_id if stimulus else None,
            created_at=self.clock(),
        )

    async def restore(self, store: AgentStore) -> AgentContext:
        """Resume from the most recent persisted event, if any."""
        event = await store.latest_event()
        if event is not None:
            self._context = AgentContext(
                state=event.state,
                intensity=event.intensity,
                previous_state=event.previous_state,
                updated_at=event.created_at,
            )
            logger.info(f"Restored emotional state: {event.state.value} ({event.intensity:.2f})")
        return self._context


def prompt_modifier(context: AgentContext) -> str:
    """Describe the current state for the text generator."""
    if context.intensity > 0.7:
        degree = "very"
    elif context.intensity > 0.4:
        degree = "somewhat"
    else:
        degree = "slightly"

    profile = context.profile
    return (
        f"You're feeling {degree} {context.state.value}: {profile.description}. "
        f"Energy: {profile.energy}. Voice: {profile.voice}."
    )
