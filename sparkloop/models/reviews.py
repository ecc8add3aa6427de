"""
Schemas for structured completion responses.

Every judgment the agent asks of the completion capability is decoded
into one of these models. A payload that does not validate is treated as
unparseable, never as a partial answer.
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional


CheckResult = Literal["pass", "fail"]
GuardrailResult = Literal["pass", "warn", "fail"]


class ScoutReport(BaseModel):
    """Triage read of a stimulus."""
    who: str = ""
    what: str = ""
    why: str = ""
    vibe: str = ""
    spark_level: float = Field(ge=0.0, le=10.0)
    recommendation: Literal["engage", "skip", "watch"]
    engagement_type: Optional[Literal["reply", "quote", "like", "follow"]] = None
    curiosity_trigger: str = ""


class PrincipleReview(BaseModel):
    """Four-check principle review of a proposed action."""
    approved: bool
    truth_gate: CheckResult
    value_gate: CheckResult
    mirror_gate: CheckResult
    wonder_gate: CheckResult
    failed_gate: Optional[str] = None
    message: str = ""
    guidance: str = ""

    def failed_checks(self) -> list[str]:
        checks = {
            "truth": self.truth_gate,
            "value": self.value_gate,
            "mirror": self.mirror_gate,
            "wonder": self.wonder_gate,
        }
        return [name for name, result in checks.items() if result == "fail"]


class GuardrailReview(BaseModel):
    """Safety review of generated content."""
    passes_guardrails: bool
    truth: GuardrailResult
    value: GuardrailResult
    sensitivity: GuardrailResult
    authenticity: GuardrailResult
    concerns: list[str] = Field(default_factory=list)
    suggestion: str = ""

    def failed_checks(self) -> list[str]:
        checks = {
            "truth": self.truth,
            "value": self.value,
            "sensitivity": self.sensitivity,
            "authenticity": self.authenticity,
        }
        return [name for name, result in checks.items() if result == "fail"]


class ComposedPost(BaseModel):
    """Generated post text."""
    text: str = Field(min_length=1)
