"""Retry policy for Messages API requests.

Exponential backoff with jitter, gated on status code. Connection
failures and timeouts are always retryable; HTTP errors only when their
status is listed in ``retry_statuses``.
"""

import logging
import random
from collections.abc import Callable, Iterable, Mapping

from anthropic_tools.exceptions import APIConnectionError, APIError

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Decide whether to retry a failed attempt and how long to wait.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying)
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        jitter: Random fraction added on top of each delay (0.25 = up to +25%)
        retry_statuses: HTTP statuses that are worth retrying
        random_func: Returns a float in [0, 1). Inject for deterministic tests.
    """

    def __init__(
        self,
        max_retries: int = 2,
        initial_delay: float = 0.5,
        max_delay: float = 8.0,
        jitter: float = 0.25,
        retry_statuses: Iterable[int] = (408, 409, 429, 500, 502, 503, 504),
        random_func: Callable[[], float] | None = None,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.retry_statuses = frozenset(retry_statuses)
        self._random = random_func or random.random

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            initial_delay=config.retry_initial_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
            retry_statuses=config.retry_statuses,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, APIConnectionError):
            return True
        if isinstance(error, APIError):
            return error.status_code in self.retry_statuses
        return False

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Whether attempt number ``attempt`` (0-based) may be followed by another."""
        return attempt < self.max_retries and self.is_retryable(error)

    def backoff(self, attempt: int) -> float:
        """Exponential delay for retry number ``attempt`` (0-based), with jitter."""
        base = min(self.initial_delay * (2**attempt), self.max_delay)
        return base * (1 + self.jitter * self._random())

    def delay_for(self, error: Exception, attempt: int) -> float:
        """Delay before retrying after ``error``.

        A numeric ``retry-after`` header on the failed response wins over
        the computed backoff, capped at ``max_delay``.
        """
        retry_after = _retry_after(getattr(error, "headers", None))
        if retry_after is not None:
            return min(retry_after, self.max_delay)
        return self.backoff(attempt)


def _retry_after(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        logger.debug("Ignoring non-numeric retry-after header: %s", value)
        return None
    return max(seconds, 0.0)
