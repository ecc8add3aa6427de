"""Persistence for the agent's events, outcomes and learned state."""

from .backends import InMemoryBackend, JsonFileBackend, StorageBackend
from .store import AgentStore

__all__ = [
    "AgentStore",
    "InMemoryBackend",
    "JsonFileBackend",
    "StorageBackend",
]
