"""anthropic-tools exception hierarchy.

Base exceptions for every layer of the client with correlation ID support.

Usage:
    from anthropic_tools.exceptions import APIError, RateLimitError

    try:
        message = await client.create_message(messages)
    except RateLimitError as e:
        logger.warning("Rate limited (request %s)", e.request_id)
    except APIError as e:
        logger.error("API call failed", extra={"correlation_id": e.correlation_id})
"""

import json
import uuid
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from anthropic_tools.models import Message


class AnthropicToolsError(Exception):
    """Base exception for all anthropic-tools errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class ConfigurationError(AnthropicToolsError):
    """Errors from client configuration (raised before any network activity)."""

    pass


# =============================================================================
# API ERRORS
# =============================================================================


class APIError(AnthropicToolsError):
    """Errors from Messages API calls.

    Carries the HTTP status code, the raw response body and the request id
    returned by the API (when the response carried one).
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        body: Any = None,
        request_id: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.status_code = status_code
        self.body = body
        self.request_id = request_id
        self.headers = headers or {}
        text = message or "API error occurred"
        if request_id:
            text = f"{text} (Request ID: {request_id})"
        super().__init__(text, correlation_id=request_id)


class APIConnectionError(APIError):
    """Network-level failure: the request never produced an HTTP response,
    or the connection dropped while a response was being streamed."""

    pass


class APIConnectionTimeoutError(APIConnectionError):
    """The request timed out."""

    pass


class BadRequestError(APIError):
    pass


class AuthenticationError(APIError):
    pass


class PermissionDeniedError(APIError):
    pass


class NotFoundError(APIError):
    pass


class UnprocessableEntityError(APIError):
    pass


class RateLimitError(APIError):
    pass


class ServerError(APIError):
    """Any 5xx response."""

    pass


class InternalServerError(ServerError):
    pass


class ServiceUnavailableError(ServerError):
    pass


_STATUS_ERRORS: dict[int, tuple[type[APIError], str]] = {
    400: (BadRequestError, "Bad request"),
    401: (AuthenticationError, "Invalid API key"),
    403: (PermissionDeniedError, "Permission denied"),
    404: (NotFoundError, "Resource not found"),
    422: (UnprocessableEntityError, "Unprocessable entity"),
    429: (RateLimitError, "Rate limit exceeded"),
    500: (InternalServerError, "Internal server error"),
    503: (ServiceUnavailableError, "Service unavailable"),
}


def _error_detail(body: Any) -> str | None:
    """Pull the human-readable message out of an API error body."""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            return body.strip() or None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return None


def error_for_status(
    status_code: int,
    body: Any = None,
    request_id: str | None = None,
    headers: dict[str, str] | None = None,
) -> APIError:
    """Build the typed error for a non-success HTTP status.

    Args:
        status_code: HTTP status of the response
        body: Raw response body (text, bytes or decoded JSON)
        request_id: Request id header value, if any
        headers: Response headers (lower-cased names)

    Returns:
        An APIError subclass instance (not raised)
    """
    if status_code in _STATUS_ERRORS:
        error_cls, title = _STATUS_ERRORS[status_code]
    elif 500 <= status_code < 600:
        error_cls, title = ServerError, "Server error"
    else:
        error_cls, title = APIError, f"Unexpected status {status_code}"

    detail = _error_detail(body)
    message = f"{title}: {detail}" if detail and detail != title else title
    return error_cls(
        message,
        status_code=status_code,
        body=body,
        request_id=request_id,
        headers=headers,
    )


# =============================================================================
# STREAM ERRORS
# =============================================================================


class StreamError(AnthropicToolsError):
    """Errors from decoding or assembling a streamed response."""

    pass


class StreamProtocolError(StreamError):
    """A structurally invalid event sequence (out-of-order block events,
    events after message_stop, missing required fields)."""

    pass


class ToolInputDecodeError(StreamProtocolError):
    """Accumulated tool input fragments did not form valid JSON."""

    def __init__(self, message: str, *, index: int, raw: str, **kwargs):
        self.index = index
        self.raw = raw
        super().__init__(message, **kwargs)


class IncompleteStreamError(StreamError):
    """The stream ended before message_stop was received."""

    pass


class IncompleteMessageError(StreamError):
    """A result was requested before the message was complete."""

    pass


# =============================================================================
# TOOL ERRORS
# =============================================================================


class ToolError(AnthropicToolsError):
    """Errors from tool registration and the tool-use loop.

    Tool implementation failures are never raised; they become error
    tool results.
    """

    pass


class ToolRegistrationError(ToolError):
    """A tool with the same name is already registered."""

    def __init__(self, message: str, *, tool_name: str, **kwargs):
        self.tool_name = tool_name
        super().__init__(message, **kwargs)


class ToolRoundLimitError(ToolError):
    """The model kept requesting tools past the configured round-trip ceiling."""

    def __init__(self, message: str, *, rounds: int, last_message: "Message", **kwargs):
        self.rounds = rounds
        self.last_message = last_message
        super().__init__(message, **kwargs)
