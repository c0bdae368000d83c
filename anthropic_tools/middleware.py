"""Request/response middleware.

Middleware sees every HTTP exchange the client makes. Requests flow
through the stack in registration order, responses in reverse order, so
the first middleware added wraps all the others.

A middleware may return a modified RequestInfo (e.g. extra headers) or
ResponseInfo; whatever ``before_request`` returns is what gets sent.
"""

import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

REDACTED = "[REDACTED]"
DEFAULT_REDACT_KEYS = frozenset({"api_key", "x-api-key", "authorization"})


@dataclass
class RequestInfo:
    """An outgoing request as seen by middleware."""

    method: str
    url: str
    path: str
    headers: dict[str, str]
    body: dict[str, Any] | None = None
    started_at: float = field(default_factory=time.perf_counter)


@dataclass
class ResponseInfo:
    """A received response as seen by middleware.

    ``body`` is the decoded JSON body, or None for a stream whose events
    have not been read yet.
    """

    status_code: int
    headers: dict[str, str]
    request: RequestInfo
    body: Any = None
    finished_at: float = field(default_factory=time.perf_counter)

    @property
    def duration(self) -> float:
        return self.finished_at - self.request.started_at


class Middleware:
    """Base middleware; both hooks pass their argument through unchanged."""

    def before_request(self, request: RequestInfo) -> RequestInfo:
        return request

    def after_response(self, response: ResponseInfo) -> ResponseInfo:
        return response


class MiddlewareStack:
    """Ordered collection of middleware."""

    def __init__(self, middlewares: Iterable[Middleware] = ()):
        self._middlewares: list[Middleware] = []
        for middleware in middlewares:
            self.add(middleware)

    def add(self, middleware: Middleware) -> "MiddlewareStack":
        """Append a middleware.

        Raises:
            TypeError: The object lacks before_request/after_response.
        """
        if not (
            callable(getattr(middleware, "before_request", None))
            and callable(getattr(middleware, "after_response", None))
        ):
            raise TypeError("Middleware must implement before_request and after_response")
        self._middlewares.append(middleware)
        return self

    def process_request(self, request: RequestInfo) -> RequestInfo:
        for middleware in self._middlewares:
            request = middleware.before_request(request)
        return request

    def process_response(self, response: ResponseInfo) -> ResponseInfo:
        for middleware in reversed(self._middlewares):
            response = middleware.after_response(response)
        return response

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self):
        return iter(self._middlewares)


class LoggingMiddleware(Middleware):
    """Log every request and response, optionally with redacted bodies.

    Args:
        logger: Logger to write to (defaults to ``anthropic_tools.http``)
        level: Log level for all records
        log_request_body: Include the JSON request body
        log_response_body: Include the JSON response body
        redact_keys: Dict keys whose values are replaced with [REDACTED]
        redact_patterns: Regexes whose matches inside string values are redacted
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
        *,
        log_request_body: bool = False,
        log_response_body: bool = False,
        redact_keys: Iterable[str] = DEFAULT_REDACT_KEYS,
        redact_patterns: Iterable[str | re.Pattern[str]] = (),
    ):
        self.logger = logger or logging.getLogger("anthropic_tools.http")
        self.level = level
        self.log_request_body = log_request_body
        self.log_response_body = log_response_body
        self.redact_keys = frozenset(key.lower() for key in redact_keys)
        self.redact_patterns = [re.compile(pattern) for pattern in redact_patterns]

    def before_request(self, request: RequestInfo) -> RequestInfo:
        self.logger.log(self.level, "Request: %s %s", request.method.upper(), request.url)
        if self.log_request_body and request.body is not None:
            self.logger.log(self.level, "Request body: %s", self.redact(request.body))
        return request

    def after_response(self, response: ResponseInfo) -> ResponseInfo:
        self.logger.log(
            self.level,
            "Response: status %d (%.2fs)",
            response.status_code,
            response.duration,
        )
        if self.log_response_body and response.body is not None:
            self.logger.log(self.level, "Response body: %s", self.redact(response.body))
        return response

    def redact(self, data: Any) -> Any:
        """Return a copy of ``data`` with sensitive values replaced."""
        if isinstance(data, dict):
            return {
                key: REDACTED if str(key).lower() in self.redact_keys else self.redact(value)
                for key, value in data.items()
            }
        if isinstance(data, list):
            return [self.redact(item) for item in data]
        if isinstance(data, str):
            for pattern in self.redact_patterns:
                data = pattern.sub(REDACTED, data)
        return data
