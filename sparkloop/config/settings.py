"""
Application settings and configuration.

Uses environment variables (optionally from a .env file) with sensible defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os

from dotenv import load_dotenv


@dataclass
class PlatformSettings:
    """X/Twitter API configuration."""
    base_url: str = "https://api.twitter.com/2"
    user_access_token: str = ""  # OAuth 2.0 user-context token (needed for writes)
    user_id: str = ""

    # Rate limiting
    max_requests_per_15min: int = 300
    max_retries: int = 3

    @classmethod
    def from_env(cls) -> PlatformSettings:
        """Load from environment variables."""
        return cls(
            base_url=os.getenv("X_API_BASE_URL", "https://api.twitter.com/2"),
            user_access_token=os.getenv("X_USER_ACCESS_TOKEN", ""),
            user_id=os.getenv("X_USER_ID", ""),
            max_requests_per_15min=int(os.getenv("X_MAX_REQUESTS_PER_15MIN", "300")),
        )


@dataclass
class LLMSettings:
    """Completion API configuration."""
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    max_tokens: int = 1024
    request_timeout_seconds: float = 20.0  # Per gate evaluation, fail closed past this

    @classmethod
    def from_env(cls) -> LLMSettings:
        """Load from environment variables."""
        return cls(
            model=os.getenv("LLM_MODEL", "claude-sonnet-4-20250514"),
            api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "1024")),
            request_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "20")),
        )


@dataclass
class StorageSettings:
    """Persistence configuration."""
    backend: str = "json"  # "json", "memory"
    data_dir: str = "data"

    @classmethod
    def from_env(cls) -> StorageSettings:
        """Load from environment variables."""
        return cls(
            backend=os.getenv("STORAGE_BACKEND", "json"),
            data_dir=os.getenv("DATA_DIR", "data"),
        )


@dataclass
class AgentSettings:
    """Loop timing and decision thresholds."""
    cycle_interval_seconds: int = 900
    outcome_poll_interval_seconds: int = 300

    # Deferred outcomes
    outcome_check_delay_hours: float = 24.0
    outcome_drain_limit: int = 10
    outcome_max_attempts: int = 3
    outcome_retry_delay_minutes: int = 60

    # Decisions
    spark_threshold: float = 6.0
    scout_enabled: bool = True
    pattern_min_samples: int = 3
    original_post_probability: float = 0.2
    max_stimuli_per_cycle: int = 25
    seen_cache_capacity: int = 1000

    # Platform calls
    stimulus_page_size: int = 20  # Per source: mentions, timeline
    platform_timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> AgentSettings:
        """Load from environment variables."""
        return cls(
            cycle_interval_seconds=int(os.getenv("CYCLE_INTERVAL_SECONDS", "900")),
            outcome_poll_interval_seconds=int(os.getenv("OUTCOME_POLL_INTERVAL_SECONDS", "300")),
            outcome_check_delay_hours=float(os.getenv("OUTCOME_CHECK_DELAY_HOURS", "24")),
            outcome_drain_limit=int(os.getenv("OUTCOME_DRAIN_LIMIT", "10")),
            outcome_max_attempts=int(os.getenv("OUTCOME_MAX_ATTEMPTS", "3")),
            outcome_retry_delay_minutes=int(os.getenv("OUTCOME_RETRY_DELAY_MINUTES", "60")),
            spark_threshold=float(os.getenv("SPARK_THRESHOLD", "6.0")),
            scout_enabled=os.getenv("SCOUT_ENABLED", "true").lower() == "true",
            pattern_min_samples=int(os.getenv("PATTERN_MIN_SAMPLES", "3")),
            original_post_probability=float(os.getenv("ORIGINAL_POST_PROBABILITY", "0.2")),
            max_stimuli_per_cycle=int(os.getenv("MAX_STIMULI_PER_CYCLE", "25")),
            seen_cache_capacity=int(os.getenv("SEEN_CACHE_CAPACITY", "1000")),
            stimulus_page_size=int(os.getenv("STIMULUS_PAGE_SIZE", "20")),
            platform_timeout_seconds=float(os.getenv("PLATFORM_TIMEOUT_SECONDS", "60")),
        )


@dataclass
class Settings:
    """Complete application settings."""
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    platform: PlatformSettings = field(default_factory=PlatformSettings.from_env)
    llm: LLMSettings = field(default_factory=LLMSettings.from_env)
    storage: StorageSettings = field(default_factory=StorageSettings.from_env)
    agent: AgentSettings = field(default_factory=AgentSettings.from_env)

    @classmethod
    def from_env(cls) -> Settings:
        """Load all settings from environment."""
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            platform=PlatformSettings.from_env(),
            llm=LLMSettings.from_env(),
            storage=StorageSettings.from_env(),
            agent=AgentSettings.from_env(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    load_dotenv()
    return Settings.from_env()
