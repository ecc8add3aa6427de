import json
from datetime import datetime, timedelta, timezone

import pytest

from sparkloop.config.settings import get_settings
from sparkloop.llm.client import MockLLMClient
from sparkloop.storage import AgentStore, InMemoryBackend


APPROVED_PRINCIPLES = {
    "approved": True,
    "truth_gate": "pass",
    "value_gate": "pass",
    "mirror_gate": "pass",
    "wonder_gate": "pass",
    "failed_gate": None,
    "message": "Looks genuine",
    "guidance": "",
}

CLEAN_GUARDRAILS = {
    "passes_guardrails": True,
    "truth": "pass",
    "value": "pass",
    "sensitivity": "pass",
    "authenticity": "pass",
    "concerns": [],
    "suggestion": "",
}


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return AgentStore(InMemoryBackend())


@pytest.fixture
def approving_llm():
    """Completion double that approves everything and writes a fixed post."""
    llm = MockLLMClient()
    llm.route("PRINCIPLE REVIEW", json.dumps(APPROVED_PRINCIPLES))
    llm.route("GUARDRAIL REVIEW", json.dumps(CLEAN_GUARDRAILS))
    llm.route("COMPOSE POST", json.dumps({"text": "What if generalization is mostly about the data?"}))
    return llm
