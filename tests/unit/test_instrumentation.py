"""Unit tests for metrics collectors."""

import logging
from unittest.mock import MagicMock, call

import pytest

from anthropic_tools.instrumentation import (
    LoggerMetricsCollector,
    MetricsCollector,
    PrometheusMetricsCollector,
    StatsdMetricsCollector,
    record_safely,
)


class TestMetricsCollector:
    def test_base_collector_is_noop(self):
        collector = MetricsCollector()
        assert collector.record_request_start(method="POST", path="/v1/messages") is None
        assert collector.record_request(method="POST", path="/", status=200, duration=0.1) is None
        assert collector.record_token_usage(input_tokens=1, output_tokens=2) is None
        assert collector.record_tool_usage(tool_name="t", duration=0.1) is None


class TestLoggerMetricsCollector:
    def test_writes_each_measurement(self, caplog: pytest.LogCaptureFixture):
        collector = LoggerMetricsCollector()

        with caplog.at_level(logging.INFO, logger="anthropic_tools.metrics"):
            collector.record_request_start(method="post", path="/v1/messages")
            collector.record_request(method="post", path="/v1/messages", status=200, duration=0.25)
            collector.record_token_usage(input_tokens=10, output_tokens=5)
            collector.record_tool_usage(tool_name="weather", duration=1.5)

        messages = [record.getMessage() for record in caplog.records]
        assert messages == [
            "Request started: POST /v1/messages",
            "Request: POST /v1/messages - status 200 - 0.250s",
            "Token usage: input 10 - output 5 - total 15",
            "Tool usage: weather - 1.50s",
        ]


class TestStatsdMetricsCollector:
    def test_request_tagged_with_method_path_status(self):
        statsd = MagicMock()
        collector = StatsdMetricsCollector(statsd, prefix="app")

        collector.record_request(method="post", path="/v1/messages", status=200, duration=0.25)

        tags = ["method:POST", "path:/v1/messages", "status:200"]
        statsd.increment.assert_called_once_with("app.request.count", tags=tags)
        statsd.histogram.assert_called_once_with("app.request.duration", 0.25, tags=tags)

    def test_token_usage_histograms(self):
        statsd = MagicMock()
        StatsdMetricsCollector(statsd).record_token_usage(input_tokens=10, output_tokens=5)

        assert statsd.histogram.call_args_list == [
            call("anthropic_tools.tokens.input", 10),
            call("anthropic_tools.tokens.output", 5),
            call("anthropic_tools.tokens.total", 15),
        ]

    def test_tool_usage_tagged_with_tool(self):
        statsd = MagicMock()
        StatsdMetricsCollector(statsd).record_tool_usage(tool_name="weather", duration=1.5)

        statsd.increment.assert_called_once_with("anthropic_tools.tool.count", tags=["tool:weather"])
        statsd.histogram.assert_called_once_with(
            "anthropic_tools.tool.duration", 1.5, tags=["tool:weather"]
        )

    def test_request_start_is_noop(self):
        statsd = MagicMock()
        StatsdMetricsCollector(statsd).record_request_start(method="POST", path="/v1/messages")
        assert statsd.mock_calls == []


class TestPrometheusMetricsCollector:
    @pytest.fixture
    def registry(self):
        from prometheus_client import CollectorRegistry

        return CollectorRegistry()

    def test_request_counter_and_histogram(self, registry):
        collector = PrometheusMetricsCollector(registry, prefix="app")

        collector.record_request(method="post", path="/v1/messages", status=200, duration=0.25)
        collector.record_request(method="POST", path="/v1/messages", status=200, duration=0.75)

        labels = {"method": "POST", "path": "/v1/messages", "status": "200"}
        assert registry.get_sample_value("app_requests_total", labels) == 2.0
        assert registry.get_sample_value("app_request_duration_seconds_count", labels) == 2.0
        assert registry.get_sample_value("app_request_duration_seconds_sum", labels) == 1.0

    def test_token_counter_by_type(self, registry):
        collector = PrometheusMetricsCollector(registry)

        collector.record_token_usage(input_tokens=10, output_tokens=5)
        collector.record_token_usage(input_tokens=1, output_tokens=2)

        def tokens(kind):
            return registry.get_sample_value("anthropic_tools_tokens_total", {"type": kind})

        assert (tokens("input"), tokens("output"), tokens("total")) == (11.0, 7.0, 18.0)

    def test_tool_counter_and_histogram(self, registry):
        collector = PrometheusMetricsCollector(registry)

        collector.record_tool_usage(tool_name="weather", duration=1.5)

        labels = {"tool": "weather"}
        assert registry.get_sample_value("anthropic_tools_tool_usage_total", labels) == 1.0
        assert registry.get_sample_value("anthropic_tools_tool_duration_seconds_sum", labels) == 1.5

    @pytest.mark.asyncio
    async def test_works_as_client_metrics(self, registry, make_client):
        import httpx

        from tests.helpers import sse

        collector = PrometheusMetricsCollector(registry)
        client = make_client(lambda r: httpx.Response(200, json=sse.message_body()), metrics=collector)

        await client.create_message("Hi")

        labels = {"method": "POST", "path": "/v1/messages", "status": "200"}
        assert registry.get_sample_value("anthropic_tools_requests_total", labels) == 1.0


class TestRecordSafely:
    def test_passes_keyword_arguments(self):
        record = MagicMock()
        record_safely(record, tool_name="weather", duration=0.5)
        record.assert_called_once_with(tool_name="weather", duration=0.5)

    def test_swallows_collector_failure(self, caplog: pytest.LogCaptureFixture):
        def broken(**kwargs):
            raise RuntimeError("backend down")

        with caplog.at_level(logging.DEBUG, logger="anthropic_tools.instrumentation"):
            record_safely(broken, input_tokens=1, output_tokens=1)

        assert "broken failed: backend down" in caplog.text
