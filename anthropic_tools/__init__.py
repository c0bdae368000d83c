"""anthropic-tools: async client for the Anthropic Messages API.

Request construction, response parsing, streaming event decoding and a
tool-use conversation loop.

Usage:
    from anthropic_tools import Conversation, Tool, create_client

    async with create_client() as client:
        conversation = Conversation(client, tools=[weather_tool])
        reply = await conversation.send("What's the weather in Paris?")
"""

from anthropic_tools.client import AnthropicClient, ClientConfig, RetryPolicy, create_client
from anthropic_tools.conversation import Conversation
from anthropic_tools.exceptions import (
    AnthropicToolsError,
    APIConnectionError,
    APIConnectionTimeoutError,
    APIError,
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    IncompleteMessageError,
    IncompleteStreamError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServerError,
    ServiceUnavailableError,
    StreamError,
    StreamProtocolError,
    ToolError,
    ToolInputDecodeError,
    ToolRegistrationError,
    ToolRoundLimitError,
    UnprocessableEntityError,
)
from anthropic_tools.instrumentation import (
    LoggerMetricsCollector,
    MetricsCollector,
    PrometheusMetricsCollector,
    StatsdMetricsCollector,
)
from anthropic_tools.middleware import LoggingMiddleware, Middleware, MiddlewareStack
from anthropic_tools.models import (
    AssistantMessage,
    Message,
    TextBlock,
    TokenCount,
    ToolResult,
    ToolUseBlock,
    Usage,
    UserMessage,
)
from anthropic_tools.streaming import StreamController, StreamEventKind, StreamingSession
from anthropic_tools.tools import Tool, ToolRegistry, define_tool

__version__ = "0.1.0"

__all__ = [
    "APIConnectionError",
    "APIConnectionTimeoutError",
    "APIError",
    "AnthropicClient",
    "AnthropicToolsError",
    "AssistantMessage",
    "AuthenticationError",
    "BadRequestError",
    "ClientConfig",
    "ConfigurationError",
    "Conversation",
    "IncompleteMessageError",
    "IncompleteStreamError",
    "InternalServerError",
    "LoggerMetricsCollector",
    "LoggingMiddleware",
    "Message",
    "MetricsCollector",
    "Middleware",
    "MiddlewareStack",
    "NotFoundError",
    "PermissionDeniedError",
    "PrometheusMetricsCollector",
    "RateLimitError",
    "RetryPolicy",
    "ServerError",
    "ServiceUnavailableError",
    "StatsdMetricsCollector",
    "StreamController",
    "StreamError",
    "StreamEventKind",
    "StreamProtocolError",
    "StreamingSession",
    "TextBlock",
    "TokenCount",
    "Tool",
    "ToolError",
    "ToolInputDecodeError",
    "ToolRegistrationError",
    "ToolRegistry",
    "ToolResult",
    "ToolRoundLimitError",
    "ToolUseBlock",
    "UnprocessableEntityError",
    "Usage",
    "UserMessage",
    "create_client",
    "define_tool",
]
