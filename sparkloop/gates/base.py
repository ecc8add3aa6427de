"""
Gate interface and the ordered chain that runs gates.

Gates run strictly in order and any one of them may veto. A gate that
raises, times out or returns something undecodable counts as a veto:
approval needs an explicit pass from every stage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence
import asyncio
import logging

from ..exceptions import UnparseableResponse
from ..models.decision import Decision
from ..models.emotion import AgentContext, Classification
from ..models.stimulus import Relationship, Stimulus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateContext:
    """Everything a gate may look at. Stimulus is None for original posts."""
    classification: Classification
    agent: AgentContext
    decision: Decision
    stimulus: Optional[Stimulus] = None
    relationship: Optional[Relationship] = None
    topic: Optional[str] = None
    spark: Optional[float] = None
    guidance: str = ""

    @property
    def stimulus_text(self) -> str:
        return self.stimulus.text if self.stimulus else ""


@dataclass(frozen=True)
class Verdict:
    """One gate's answer. A gate may revise the decision or attach a spark score."""
    approved: bool
    gate: str
    reason: str
    guidance: str = ""
    decision: Optional[Decision] = None
    spark: Optional[float] = None

    @classmethod
    def approve(cls, gate: str, reason: str, **kwargs) -> Verdict:
        return cls(approved=True, gate=gate, reason=reason, **kwargs)

    @classmethod
    def reject(cls, gate: str, reason: str, guidance: str = "", **kwargs) -> Verdict:
        return cls(approved=False, gate=gate, reason=reason, guidance=guidance, **kwargs)


class Gate(ABC):
    """One approval stage."""

    name: str = "gate"

    @abstractmethod
    async def evaluate(self, context: GateContext) -> Verdict:
        """Approve or veto the decision in context."""
        pass


@dataclass
class ChainVerdict:
    """Combined result of a gate chain."""
    approved: bool
    decision: Decision
    verdicts: list[Verdict] = field(default_factory=list)
    spark: Optional[float] = None

    @property
    def rejected_by(self) -> Optional[str]:
        for verdict in self.verdicts:
            if not verdict.approved:
                return verdict.gate
        return None

    @property
    def reason(self) -> str:
        if not self.verdicts:
            return "no gates evaluated"
        last = self.verdicts[-1]
        return f"{last.gate}: {last.reason}"

    @property
    def guidance(self) -> str:
        return self.verdicts[-1].guidance if self.verdicts else ""


class GateChain:
    """Runs gates in order; the first veto ends the chain."""

    def __init__(self, gates: Sequence[Gate], timeout_seconds: float = 20.0):
        self.gates = list(gates)
        self.timeout_seconds = timeout_seconds

    async def evaluate(self, context: GateContext) -> ChainVerdict:
        verdicts: list[Verdict] = []

        if not self.gates:
            verdicts.append(Verdict.reject("chain", "no gates configured"))
            return ChainVerdict(approved=False, decision=context.decision, verdicts=verdicts)

        for gate in self.gates:
            verdict = await self._run_gate(gate, context)
            verdicts.append(verdict)

            if not verdict.approved:
                logger.info(f"Gate {gate.name} rejected {context.decision.decision_type.value}: {verdict.reason}")
                return ChainVerdict(
                    approved=False,
                    decision=context.decision,
                    verdicts=verdicts,
                    spark=context.spark,
                )

            if verdict.decision is not None:
                context = replace(context, decision=verdict.decision)
            if verdict.spark is not None:
                context = replace(context, spark=verdict.spark)

        return ChainVerdict(
            approved=True,
            decision=context.decision,
            verdicts=verdicts,
            spark=context.spark,
        )

    async def _run_gate(self, gate: Gate, context: GateContext) -> Verdict:
        try:
            verdict = await asyncio.wait_for(gate.evaluate(context), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Gate {gate.name} timed out after {self.timeout_seconds}s")
            return Verdict.reject(gate.name, "evaluation timed out", guidance="Try again later")
        except UnparseableResponse as e:
            logger.warning(f"Gate {gate.name} got an unparseable response: {e}")
            return Verdict.reject(gate.name, "unparseable judgment", guidance="Try again later")
        except Exception as e:
            logger.warning(f"Gate {gate.name} failed: {e!r}")
            return Verdict.reject(gate.name, f"evaluation failed: {e}", guidance="Try again later")

        if not isinstance(verdict, Verdict):
            logger.warning(f"Gate {gate.name} returned {type(verdict).__name__}, not a Verdict")
            return Verdict.reject(gate.name, "invalid verdict")
        return verdict
