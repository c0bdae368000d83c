"""Client configuration model and timeout scaling."""

from pydantic import BaseModel, Field, SecretStr

from anthropic_tools.settings import (
    DEFAULT_API_URL,
    DEFAULT_API_VERSION,
    DEFAULT_MODEL,
    DEFAULT_RETRY_STATUSES,
    Settings,
    get_settings,
)

# Requests never time out faster than this when timeouts scale with max_tokens
MIN_DYNAMIC_TIMEOUT = 600.0
SECONDS_PER_HOUR = 3600.0
MAX_OUTPUT_TOKENS = 128_000


def calculate_timeout(max_tokens: int | None) -> float:
    """Scale the request timeout with the requested output size.

    An hour per 128k output tokens, never below ten minutes.

    Args:
        max_tokens: Requested max_tokens, or None

    Returns:
        Timeout in seconds
    """
    if max_tokens is None:
        return MIN_DYNAMIC_TIMEOUT
    return max(MIN_DYNAMIC_TIMEOUT, SECONDS_PER_HOUR * max_tokens / MAX_OUTPUT_TOKENS)


class ClientConfig(BaseModel):
    """Configuration for AnthropicClient."""

    api_key: SecretStr = Field(default=SecretStr(""), description="Anthropic API key")
    api_url: str = Field(default=DEFAULT_API_URL, description="Base URL of the Messages API")
    api_version: str = Field(default=DEFAULT_API_VERSION)
    model: str = Field(default=DEFAULT_MODEL, description="Default model id")
    max_tokens: int = Field(default=4096, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    timeout: float = Field(default=120.0, gt=0, description="Request timeout in seconds")
    dynamic_timeout: bool = Field(
        default=True,
        description="Derive the timeout from max_tokens instead of using 'timeout'",
    )
    max_retries: int = Field(default=2, ge=0)
    retry_initial_delay: float = Field(default=0.5, ge=0.0)
    retry_max_delay: float = Field(default=8.0, ge=0.0)
    retry_jitter: float = Field(default=0.25, ge=0.0, le=1.0)
    retry_statuses: frozenset[int] = Field(default=frozenset(DEFAULT_RETRY_STATUSES))
    max_tool_rounds: int = Field(default=10, ge=1)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides) -> "ClientConfig":
        """Build a config from environment settings, then apply overrides.

        Args:
            settings: Settings to read (defaults to get_settings())
            **overrides: Field values taking precedence over settings

        Returns:
            ClientConfig instance
        """
        settings = settings or get_settings()
        values = {
            "api_key": settings.api_key,
            "api_url": settings.api_url,
            "api_version": settings.api_version,
            "model": settings.model,
            "max_tokens": settings.max_tokens,
            "temperature": settings.temperature,
            "timeout": settings.timeout,
            "dynamic_timeout": settings.dynamic_timeout,
            "max_retries": settings.max_retries,
            "retry_initial_delay": settings.retry_initial_delay,
            "retry_max_delay": settings.retry_max_delay,
            "retry_jitter": settings.retry_jitter,
            "retry_statuses": frozenset(settings.retry_statuses),
            "max_tool_rounds": settings.max_tool_rounds,
        }
        values.update(overrides)
        return cls(**values)

    def request_timeout(self, max_tokens: int | None) -> float:
        """Timeout for one request asking for ``max_tokens`` output tokens."""
        if self.dynamic_timeout:
            return calculate_timeout(max_tokens)
        return self.timeout
