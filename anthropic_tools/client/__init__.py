"""Messages API client package."""

from anthropic_tools.client.client import AnthropicClient, create_client
from anthropic_tools.client.config import ClientConfig, calculate_timeout
from anthropic_tools.client.retry import RetryPolicy

__all__ = [
    "AnthropicClient",
    "ClientConfig",
    "RetryPolicy",
    "calculate_timeout",
    "create_client",
]
