"""Anthropic Messages API client.

Thin facade combining the transport in base with the endpoint mixins.
"""

from typing import Any

from anthropic_tools.client.base import BaseClient
from anthropic_tools.client.config import ClientConfig
from anthropic_tools.client.messages import MessagesMixin

CLIENT_OPTIONS = ("http_client", "middleware", "metrics", "retry_policy", "sleep")


class AnthropicClient(BaseClient, MessagesMixin):
    """Async client for the Messages API.

    Usage:
        async with create_client() as client:
            message = await client.create_message([UserMessage(content="Hello")])
            print(message.text)
    """

    pass


def create_client(config: ClientConfig | None = None, **kwargs: Any) -> AnthropicClient:
    """Build a fresh client.

    Args:
        config: ClientConfig; when omitted one is built from environment
            settings. Any ClientConfig field in ``kwargs`` is applied on top.
        **kwargs: ClientConfig field overrides and AnthropicClient options
            (http_client, middleware, metrics, retry_policy, sleep)

    Returns:
        A new AnthropicClient (never a shared instance)

    Raises:
        ConfigurationError: No API key is configured.
    """
    options = {key: kwargs.pop(key) for key in CLIENT_OPTIONS if key in kwargs}
    if config is None:
        config = ClientConfig.from_settings(**kwargs)
    elif kwargs:
        config = ClientConfig.model_validate({**config.model_dump(), **kwargs})
    return AnthropicClient(config, **options)
