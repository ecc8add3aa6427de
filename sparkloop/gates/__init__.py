"""Ordered approval gates for proposed actions."""

from .base import ChainVerdict, Gate, GateChain, GateContext, Verdict
from .principles import PrincipleGate
from .safety import ContentSafetyGate
from .triage import TriageGate

__all__ = [
    "ChainVerdict",
    "Gate",
    "GateChain",
    "GateContext",
    "Verdict",
    "PrincipleGate",
    "ContentSafetyGate",
    "TriageGate",
]
