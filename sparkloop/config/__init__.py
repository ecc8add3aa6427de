"""Configuration for the sparkloop agent."""

from .settings import (
    AgentSettings,
    LLMSettings,
    PlatformSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "AgentSettings",
    "LLMSettings",
    "PlatformSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
