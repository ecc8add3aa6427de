"""
Pattern aggregator - rolling outcome statistics per (state, decision).

Only the outcome scheduler's finalize step writes here. Everything else
reads through lookup() and spark_multiplier(), which hide patterns that
have too few samples to be more than noise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
import logging

from ..clock import Clock, utcnow
from ..models.decision import DecisionType
from ..models.emotion import EmotionalState
from ..models.pattern import Pattern, PatternLookup, pattern_key

if TYPE_CHECKING:
    from ..storage.store import AgentStore

logger = logging.getLogger(__name__)

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.5


class PatternAggregator:
    """Learns which emotional states lead to which good outcomes."""

    def __init__(
        self,
        store: Optional[AgentStore] = None,
        min_samples: int = 3,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.min_samples = min_samples
        self.clock = clock
        self.patterns: dict[str, Pattern] = {}

    async def load(self) -> int:
        """Prime statistics from the store. Returns the number loaded."""
        if self.store is None:
            return 0
        for pattern in await self.store.load_patterns():
            self.patterns[pattern.key] = pattern
        logger.info(f"Loaded {len(self.patterns)} learned patterns")
        return len(self.patterns)

    async def record_outcome(
        self,
        state: EmotionalState,
        decision_type: DecisionType,
        score: float,
    ) -> Pattern:
        key = pattern_key(state, decision_type)
        pattern = self.patterns.get(key)
        if pattern is None:
            pattern = Pattern(state=state, decision_type=decision_type)
            self.patterns[key] = pattern

        pattern.record(score, at=self.clock())
        logger.debug(
            f"Pattern {key}: n={pattern.count} avg={pattern.avg_score:.2f} "
            f"success={pattern.success_rate:.0%}"
        )

        if self.store is not None:
            await self.store.save_pattern(pattern)
        return pattern

    def lookup(
        self,
        state: EmotionalState,
        decision_type: DecisionType,
    ) -> Optional[PatternLookup]:
        """Surfaced statistics, or None below the minimum sample size."""
        pattern = self.patterns.get(pattern_key(state, decision_type))
        if pattern is None or pattern.count < self.min_samples:
            return None
        return PatternLookup(
            avg_score=pattern.avg_score,
            success_rate=pattern.success_rate,
            should_continue=pattern.should_continue,
            count=pattern.count,
        )

    def spark_multiplier(self, state: EmotionalState, decision_type: DecisionType) -> float:
        """Bounded scaling for triage: 1.0 when nothing is known."""
        found = self.lookup(state, decision_type)
        if found is None:
            return 1.0
        multiplier = MIN_MULTIPLIER + (found.avg_score + found.success_rate) / 2
        if not found.should_continue:
            multiplier = min(multiplier, 1.0)
        return max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, multiplier))

    def surfaced(self) -> list[Pattern]:
        return [p for p in self.patterns.values() if p.count >= self.min_samples]

    def learned_context(self, top_n: int = 3) -> str:
        """Short summary of what has worked, for prompts."""
        surfaced = sorted(self.surfaced(), key=lambda p: p.avg_score, reverse=True)
        if not surfaced:
            return ""

        lines = ["What has worked before:"]
        for p in surfaced[:top_n]:
            lines.append(
                f"- {p.state.value} + {p.decision_type.value}: "
                f"{p.success_rate:.0%} success over {p.count} actions"
            )

        careful = [p for p in surfaced if p.success_rate < 0.3]
        if careful:
            lines.append("Be careful with:")
            for p in careful:
                lines.append(
                    f"- {p.state.value} + {p.decision_type.value} "
                    f"(only {p.success_rate:.0%} success)"
                )
        return "\n".join(lines)
