"""Unit tests for ToolRegistry registration and invocation."""

import asyncio
from unittest.mock import MagicMock

import pytest

from anthropic_tools.exceptions import ToolRegistrationError
from anthropic_tools.instrumentation import MetricsCollector
from anthropic_tools.models import ToolUseBlock
from anthropic_tools.tools import NOT_IMPLEMENTED, Tool, ToolRegistry

SCHEMA = {"type": "object", "properties": {}}


def _tool(name, implementation=None):
    return Tool(
        name=name,
        description=f"Test tool named {name} for the registry",
        input_schema=SCHEMA,
        implementation=implementation,
    )


def _use(name, tool_id=None, **tool_input):
    return ToolUseBlock(id=tool_id or f"toolu_{name}", name=name, input=tool_input)


class TestRegistration:
    def test_register_and_lookup(self):
        registry = ToolRegistry([_tool("a"), _tool("b")])
        assert len(registry) == 2
        assert "a" in registry
        assert "missing" not in registry
        assert registry.get("b").name == "b"
        assert registry.get("missing") is None
        assert [item.name for item in registry] == ["a", "b"]

    def test_duplicate_rejected(self):
        registry = ToolRegistry([_tool("a")])
        with pytest.raises(ToolRegistrationError) as exc_info:
            registry.register(_tool("a"))
        assert exc_info.value.tool_name == "a"
        assert len(registry) == 1

    def test_definitions_in_order(self):
        registry = ToolRegistry([_tool("b"), _tool("a")])
        assert [d["name"] for d in registry.definitions()] == ["b", "a"]


class TestInvoke:
    @pytest.mark.asyncio
    async def test_results_aligned_with_uses(self):
        registry = ToolRegistry(
            [
                _tool("echo", lambda tool_input: tool_input["value"]),
                _tool("upper", lambda tool_input: tool_input["value"].upper()),
            ]
        )

        results = await registry.invoke(
            [_use("echo", value="a"), _use("upper", value="b"), _use("echo", "toolu_3", value="c")]
        )

        assert [(r.tool_use_id, r.content, r.is_error) for r in results] == [
            ("toolu_echo", "a", False),
            ("toolu_upper", "B", False),
            ("toolu_3", "c", False),
        ]

    @pytest.mark.asyncio
    async def test_parallel_runs_concurrently_and_keeps_order(self):
        started = []
        release = asyncio.Event()

        async def slow(tool_input):
            started.append(tool_input["n"])
            await release.wait()
            return tool_input["n"]

        async def release_when_both_started():
            while len(started) < 2:
                await asyncio.sleep(0)
            release.set()

        registry = ToolRegistry([_tool("slow", slow)])
        releaser = asyncio.create_task(release_when_both_started())

        results = await asyncio.wait_for(
            registry.invoke([_use("slow", "t1", n=1), _use("slow", "t2", n=2)], parallel=True),
            timeout=1,
        )
        await releaser

        assert [r.content for r in results] == [1, 2]
        assert [r.tool_use_id for r in results] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_sequential_runs_in_order(self):
        calls = []

        async def record(tool_input):
            calls.append(tool_input["n"])
            await asyncio.sleep(0)
            return tool_input["n"]

        registry = ToolRegistry([_tool("record", record)])
        await registry.invoke([_use("record", f"t{n}", n=n) for n in range(3)])

        assert calls == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_result(self):
        result = await ToolRegistry().invoke_one(_use("missing"))
        assert result.content == NOT_IMPLEMENTED
        assert result.is_error is True

    @pytest.mark.asyncio
    async def test_tool_without_implementation(self):
        result = await ToolRegistry([_tool("declared")]).invoke_one(_use("declared"))
        assert result.content == NOT_IMPLEMENTED
        assert result.is_error is True

    @pytest.mark.asyncio
    async def test_exception_becomes_error_result(self):
        def broken(tool_input):
            raise RuntimeError("weather service unavailable")

        results = await ToolRegistry([_tool("broken", broken), _tool("ok", lambda i: "fine")]).invoke(
            [_use("broken"), _use("ok")],
            parallel=True,
        )

        assert results[0].content == "weather service unavailable"
        assert results[0].is_error is True
        assert results[1].content == "fine"


class TestInvokeMetrics:
    @pytest.mark.asyncio
    async def test_tool_usage_recorded_on_success_and_failure(self):
        metrics = MagicMock(spec=MetricsCollector)

        def broken(tool_input):
            raise ValueError("bad input")

        registry = ToolRegistry([_tool("ok", lambda i: 1), _tool("broken", broken)], metrics=metrics)
        await registry.invoke([_use("ok"), _use("broken")])

        names = [call.kwargs["tool_name"] for call in metrics.record_tool_usage.call_args_list]
        assert names == ["ok", "broken"]

    @pytest.mark.asyncio
    async def test_unknown_tool_not_recorded(self):
        metrics = MagicMock(spec=MetricsCollector)
        await ToolRegistry(metrics=metrics).invoke_one(_use("missing"))
        metrics.record_tool_usage.assert_not_called()

    @pytest.mark.asyncio
    async def test_collector_failure_ignored(self):
        metrics = MagicMock(spec=MetricsCollector)
        metrics.record_tool_usage.side_effect = RuntimeError("backend down")

        result = await ToolRegistry([_tool("ok", lambda i: "fine")], metrics=metrics).invoke_one(_use("ok"))

        assert result.content == "fine"
        assert result.is_error is False
