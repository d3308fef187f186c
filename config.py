"""Configuration and settings for workflow monitoring."""

import copy
import os
from dataclasses import dataclass, fields
from pathlib import Path

from capture.driver import DEFAULT_RESEARCH_PROMPT


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Config:
    """Application configuration.

    Values set via the constructor are defaults; MONITOR_* environment
    variables (typically from a .env file) override them.
    """

    # API Keys (loaded from .env file)
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""

    # Capture settings
    snapshot_count: int = 10
    interval_ms: int = 60000  # One screenshot per minute
    capture_attempts: int = 3
    capture_retry_delay_ms: int = 5000

    # Seed prompt handed to the workflow driver (not read by the pipeline itself)
    prompt: str = DEFAULT_RESEARCH_PROMPT

    # Analysis settings
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    chat_attempts: int = 1

    # Storage paths
    snapshots_dir: Path = Path("./screenshots")
    report_dir: Path = Path("./analysis")
    logs_dir: Path = Path("./logs")

    def __post_init__(self):
        """Load API keys and overrides from the environment."""
        self.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", self.anthropic_api_key)
        self.openai_api_key = os.getenv("OPENAI_API_KEY", self.openai_api_key)
        self.google_api_key = os.getenv("GOOGLE_API_KEY", self.google_api_key)

        self.snapshot_count = _env_int("MONITOR_SNAPSHOT_COUNT", self.snapshot_count)
        self.interval_ms = _env_int("MONITOR_INTERVAL_MS", self.interval_ms)
        self.prompt = os.getenv("MONITOR_PROMPT") or self.prompt
        self.model = os.getenv("MONITOR_MODEL") or self.model

        self.snapshots_dir = Path(self.snapshots_dir)
        self.report_dir = Path(self.report_dir)
        self.logs_dir = Path(self.logs_dir)

        self.validate()

    def validate(self) -> None:
        """Raise ValueError for settings the pipeline cannot run with."""
        if self.snapshot_count < 1:
            raise ValueError(f"snapshot_count must be >= 1, got {self.snapshot_count}")
        if self.interval_ms < 0:
            raise ValueError(f"interval_ms must be >= 0, got {self.interval_ms}")
        if self.capture_attempts < 1:
            raise ValueError(f"capture_attempts must be >= 1, got {self.capture_attempts}")
        if self.chat_attempts < 1:
            raise ValueError(f"chat_attempts must be >= 1, got {self.chat_attempts}")


# Global config instance (created on first use so .env is loaded first)
config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def update_config(**kwargs) -> Config:
    """Update configuration with new values, ignoring unknown keys and None.

    The global configuration is only replaced once the updated copy validates.
    """
    global config
    candidate = copy.copy(get_config())
    known = {f.name for f in fields(Config)}
    for key, value in kwargs.items():
        if key in known and value is not None:
            if key.endswith("_dir"):
                value = Path(value)
            setattr(candidate, key, value)
    candidate.validate()
    config = candidate
    return config
