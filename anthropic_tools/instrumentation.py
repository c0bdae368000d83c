"""Metrics collectors for request, token and tool usage.

The client and the tool registry report to a MetricsCollector. The base
class records nothing; subclass it to forward measurements to a metrics
backend. Collector failures never break a request: callers go through
``record_safely``.

Usage:
    class AuditCollector(MetricsCollector):
        def record_tool_usage(self, *, tool_name, duration):
            audit_log.append((tool_name, duration))

    client = create_client(metrics=AuditCollector())

Backends ship ready-made: ``StatsdMetricsCollector`` takes a DogStatsd
client (``statsd`` extra) and ``PrometheusMetricsCollector`` registers
prometheus_client metrics (``prometheus`` extra).
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry

logger = logging.getLogger(__name__)


class MetricsCollector:
    """No-op metrics collector. Override the methods you care about."""

    def record_request_start(self, *, method: str, path: str) -> None:
        """Called before each HTTP attempt is sent."""

    def record_request(self, *, method: str, path: str, status: int, duration: float) -> None:
        """Called once response headers arrive. ``duration`` is in seconds."""

    def record_token_usage(self, *, input_tokens: int, output_tokens: int) -> None:
        """Called with the usage of each completed Message."""

    def record_tool_usage(self, *, tool_name: str, duration: float) -> None:
        """Called after each tool invocation, successful or not."""


class LoggerMetricsCollector(MetricsCollector):
    """Write every measurement to a logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger("anthropic_tools.metrics")
        self.level = level

    def record_request_start(self, *, method: str, path: str) -> None:
        self.logger.log(self.level, "Request started: %s %s", method.upper(), path)

    def record_request(self, *, method: str, path: str, status: int, duration: float) -> None:
        self.logger.log(
            self.level,
            "Request: %s %s - status %d - %.3fs",
            method.upper(),
            path,
            status,
            duration,
        )

    def record_token_usage(self, *, input_tokens: int, output_tokens: int) -> None:
        self.logger.log(
            self.level,
            "Token usage: input %d - output %d - total %d",
            input_tokens,
            output_tokens,
            input_tokens + output_tokens,
        )

    def record_tool_usage(self, *, tool_name: str, duration: float) -> None:
        self.logger.log(self.level, "Tool usage: %s - %.2fs", tool_name, duration)


class StatsdMetricsCollector(MetricsCollector):
    """Send measurements to a DogStatsD-compatible client.

    Any object with ``increment(metric, tags=...)`` and
    ``histogram(metric, value, tags=...)`` works, e.g.
    ``datadog.dogstatsd.DogStatsd``.
    """

    def __init__(self, statsd: Any, prefix: str = "anthropic_tools"):
        self.statsd = statsd
        self.prefix = prefix

    def record_request(self, *, method: str, path: str, status: int, duration: float) -> None:
        tags = [f"method:{method.upper()}", f"path:{path}", f"status:{status}"]
        self.statsd.increment(f"{self.prefix}.request.count", tags=tags)
        self.statsd.histogram(f"{self.prefix}.request.duration", duration, tags=tags)

    def record_token_usage(self, *, input_tokens: int, output_tokens: int) -> None:
        self.statsd.histogram(f"{self.prefix}.tokens.input", input_tokens)
        self.statsd.histogram(f"{self.prefix}.tokens.output", output_tokens)
        self.statsd.histogram(f"{self.prefix}.tokens.total", input_tokens + output_tokens)

    def record_tool_usage(self, *, tool_name: str, duration: float) -> None:
        tags = [f"tool:{tool_name}"]
        self.statsd.increment(f"{self.prefix}.tool.count", tags=tags)
        self.statsd.histogram(f"{self.prefix}.tool.duration", duration, tags=tags)


class PrometheusMetricsCollector(MetricsCollector):
    """Record measurements as prometheus_client counters and histograms.

    Metrics are registered on ``registry`` (the global default registry
    when omitted), so create one collector per registry and prefix.
    """

    def __init__(
        self,
        registry: "CollectorRegistry | None" = None,
        prefix: str = "anthropic_tools",
    ):
        from prometheus_client import REGISTRY, Counter, Histogram

        registry = registry if registry is not None else REGISTRY
        self.prefix = prefix
        self.request_counter = Counter(
            f"{prefix}_requests",
            "Total number of Messages API requests",
            ["method", "path", "status"],
            registry=registry,
        )
        self.request_duration = Histogram(
            f"{prefix}_request_duration_seconds",
            "Duration of Messages API requests",
            ["method", "path", "status"],
            registry=registry,
        )
        self.token_counter = Counter(
            f"{prefix}_tokens",
            "Total number of tokens used",
            ["type"],
            registry=registry,
        )
        self.tool_counter = Counter(
            f"{prefix}_tool_usage",
            "Total number of tool invocations",
            ["tool"],
            registry=registry,
        )
        self.tool_duration = Histogram(
            f"{prefix}_tool_duration_seconds",
            "Duration of tool invocations",
            ["tool"],
            registry=registry,
        )

    def record_request(self, *, method: str, path: str, status: int, duration: float) -> None:
        labels = {"method": method.upper(), "path": path, "status": str(status)}
        self.request_counter.labels(**labels).inc()
        self.request_duration.labels(**labels).observe(duration)

    def record_token_usage(self, *, input_tokens: int, output_tokens: int) -> None:
        self.token_counter.labels(type="input").inc(input_tokens)
        self.token_counter.labels(type="output").inc(output_tokens)
        self.token_counter.labels(type="total").inc(input_tokens + output_tokens)

    def record_tool_usage(self, *, tool_name: str, duration: float) -> None:
        self.tool_counter.labels(tool=tool_name).inc()
        self.tool_duration.labels(tool=tool_name).observe(duration)


def record_safely(record: Callable[..., Any], **kwargs: Any) -> None:
    """Invoke a collector method, logging and discarding any failure."""
    try:
        record(**kwargs)
    except Exception as e:
        logger.debug("Metrics collector %s failed: %s", getattr(record, "__name__", record), e)
