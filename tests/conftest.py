"""Shared test fixtures for anthropic-tools.

Provides settings isolation and clients wired to httpx.MockTransport so
no test ever reaches the network.
"""

from collections.abc import Callable, Generator
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import SecretStr

from anthropic_tools.client import AnthropicClient, ClientConfig
from anthropic_tools.settings import get_settings

ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "API_KEY",
    "ANTHROPIC_API_URL",
    "ANTHROPIC_BASE_URL",
    "ANTHROPIC_MODEL",
    "MODEL",
    "MAX_TOKENS",
    "MAX_RETRIES",
    "LOG_LEVEL",
)


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the developer's environment out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client_config() -> ClientConfig:
    """Client configuration with deterministic retry timing."""
    return ClientConfig(
        api_key=SecretStr("test-key"),
        api_url="https://api.test",
        model="claude-test",
        max_tokens=1024,
        retry_jitter=0.0,
    )


# =============================================================================
# HTTP
# =============================================================================

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_client(client_config: ClientConfig) -> Callable[..., AnthropicClient]:
    """Factory building an AnthropicClient whose HTTP traffic goes to ``handler``.

    The retry sleep is an AsyncMock, so retry tests run instantly and can
    assert on the delays requested.
    """

    def _make(handler: Handler, **kwargs) -> AnthropicClient:
        config = kwargs.pop("config", client_config)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("sleep", AsyncMock())
        return AnthropicClient(config, http_client=http_client, **kwargs)

    return _make
