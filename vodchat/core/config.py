"""
Core configuration module for vodchat.

This module defines all configuration settings for the replay engine and its
collaborators using Pydantic Settings. Configuration values are loaded from
environment variables (prefixed with ``VODCHAT_``) with sensible defaults.
"""

from typing import Optional, Literal
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    The settings are validated using Pydantic's type system.
    """

    model_config = SettingsConfigDict(
        env_prefix="VODCHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Literal["development", "production"] = Field(
        default="production", description="Selects which chat log host is used"
    )
    log_level: str = Field(default="INFO", description="Application log level")

    # Playback sampling
    sample_interval_seconds: float = Field(
        default=0.1, description="Interval between media position samples"
    )

    # Reveal strategies
    large_jump_threshold_seconds: int = Field(
        default=15, description="Jumps larger than this are treated as a context switch"
    )
    context_message_count: int = Field(
        default=25, description="Messages shown for context after a large jump"
    )
    stagger_window_seconds: float = Field(
        default=1.0, description="Window over which same-second messages are spread"
    )

    # Offset heuristic
    fallback_offset_seconds: int = Field(
        default=900, description="Offset used when no better value is known"
    )
    offset_sanity_bound_seconds: int = Field(
        default=3600, description="Largest absolute heuristic offset accepted"
    )

    # Chat log source
    chat_url_template: str = Field(
        default="https://lekkerspeuren.nl/chats/chat_{log_id}.json",
        description="Production chat log URL template",
    )
    dev_chat_url_template: str = Field(
        default="http://127.0.0.1:3000/chat_{log_id}.json",
        description="Local development chat log URL template",
    )
    offset_hints_url: Optional[str] = Field(
        default="https://raw.githubusercontent.com/hbo-nerds/lekker-chat/master/data/timedata.json",
        description="Published per-video suggested offsets",
    )
    http_timeout_seconds: float = Field(
        default=30.0, description="Total timeout for chat log requests"
    )
    http_max_retries: int = Field(
        default=3, description="Attempts made for a chat log request"
    )

    # Logfire Settings
    logfire_enabled: bool = Field(default=False, description="Enable Logfire")
    logfire_service_name: str = Field(
        default="vodchat", description="Service name reported to Logfire"
    )
    logfire_console_enabled: bool = Field(
        default=False, description="Mirror Logfire output to the console"
    )
    logfire_api_key: Optional[SecretStr] = Field(
        default=None, description="Logfire write token"
    )

    @field_validator(
        "sample_interval_seconds",
        "stagger_window_seconds",
        "http_timeout_seconds",
    )
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        """Ensure durations are strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator(
        "large_jump_threshold_seconds",
        "offset_sanity_bound_seconds",
        "http_max_retries",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Ensure thresholds are strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("context_message_count")
    @classmethod
    def validate_context_count(cls, v: int) -> int:
        """A context of zero messages is allowed, negative counts are not."""
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running against the production chat host."""
        return self.environment == "production"

    @computed_field
    @property
    def is_development(self) -> bool:
        """Check if running against a local chat host."""
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function returns a cached instance of the Settings class,
    ensuring that environment variables are only read once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
