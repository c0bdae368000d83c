"""Logging configuration for anthropic-tools.

Provides console logging with appropriate levels for library code
vs third-party libraries. The library itself never calls
configure_logging(); entry points such as the CLI do.
"""

import logging
import sys
from typing import Literal

from anthropic_tools.settings import get_settings

# List of noisy third-party loggers to suppress
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
    "asyncio",
]

# Per-logger levels for noisy libraries
NOISY_LOGGER_LEVELS = {
    "httpcore.connection": logging.ERROR,
    "httpcore.http11": logging.ERROR,
}

APP_LOGGERS = ["anthropic_tools"]


def suppress_noisy_loggers() -> None:
    """Suppress noisy third-party loggers.

    Call this after importing libraries that configure their own logging.
    """
    for logger_name in NOISY_LOGGERS:
        logger = logging.getLogger(logger_name)
        level = NOISY_LOGGER_LEVELS.get(logger_name, logging.WARNING)
        logger.setLevel(level)
        logger.handlers.clear()


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
) -> None:
    """Configure console logging.

    Sets up logging with:
    - Library logs at the configured level
    - Third-party library logs suppressed to WARNING+
    - Clean console output format on stderr

    Args:
        level: Override log level (defaults to settings.log_level or INFO)
    """
    settings = get_settings()
    log_level = level or getattr(settings, "log_level", "INFO")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.setFormatter(
        logging.Formatter(
            "%(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    for app_logger in APP_LOGGERS:
        logging.getLogger(app_logger).setLevel(getattr(logging, log_level))

    suppress_noisy_loggers()
