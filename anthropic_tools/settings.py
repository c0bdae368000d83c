"""Application settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-7-sonnet-20250219"
DEFAULT_RETRY_STATUSES = [408, 409, 429, 500, 502, 503, 504]


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,  # Allow both field name and alias
    )

    # Credentials
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
        validation_alias=AliasChoices("anthropic_api_key", "api_key"),
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the Messages API",
        validation_alias=AliasChoices("anthropic_api_url", "anthropic_base_url", "api_url"),
    )
    api_version: str = Field(
        default=DEFAULT_API_VERSION,
        description="Value sent in the anthropic-version header",
        validation_alias=AliasChoices("anthropic_api_version", "api_version"),
    )

    # Model defaults
    model: str = Field(
        default=DEFAULT_MODEL,
        description="Model id used when a request does not name one",
        validation_alias=AliasChoices("anthropic_model", "model"),
    )
    max_tokens: int = Field(default=4096, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)

    # Transport
    timeout: float = Field(
        default=120.0,
        gt=0,
        description="Request timeout in seconds when dynamic_timeout is off",
    )
    dynamic_timeout: bool = Field(
        default=True,
        description="Scale the request timeout with max_tokens (600s floor)",
    )
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_initial_delay: float = Field(default=0.5, ge=0.0)
    retry_max_delay: float = Field(default=8.0, ge=0.0)
    retry_jitter: float = Field(
        default=0.25,
        ge=0.0,
        le=1.0,
        description="Random fraction added on top of each backoff delay",
    )
    retry_statuses: list[int] = Field(default_factory=lambda: list(DEFAULT_RETRY_STATUSES))

    # Tool loop
    max_tool_rounds: int = Field(
        default=10,
        ge=1,
        description="Maximum tool-use round trips per Conversation.send()",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()
