"""
Configuration management for tailwatch.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tailwatch.models.schemas import StartPosition
from tailwatch.utils.helpers import normalise_path


class Settings(BaseSettings):
    """Collector settings loaded from environment."""

    # Watch Configuration
    root_dir: Path
    polling_interval_ms: int = Field(default=500, gt=0)
    start_position: StartPosition = StartPosition.START

    # Runtime Configuration
    event_queue_size: int = Field(default=0, ge=0)  # 0 = unbounded
    health_check_interval_s: float = Field(default=1.0, gt=0)
    shutdown_timeout_s: float = Field(default=5.0, gt=0)
    log_level: str = "INFO"

    # Storage Configuration (accepted, not consumed by the collector)
    mongodb_uri: Optional[str] = None
    database: str = "trades_db"
    collection: str = "trades"

    @field_validator("root_dir", mode="before")
    @classmethod
    def reject_empty_root(cls, value):
        """An empty root would silently watch the working directory."""
        if isinstance(value, str) and not value.strip():
            raise ValueError("root_dir must not be empty")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def polling_interval(self) -> float:
        """Polling interval in seconds."""
        return self.polling_interval_ms / 1000

    def resolved_root(self) -> Path:
        """Canonical absolute root directory."""
        return normalise_path(self.root_dir)


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment, applying explicit overrides.

    Args:
        **overrides: Field values that take precedence (None values are ignored)

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If required values are missing or invalid
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values)

