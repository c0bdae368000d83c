"""Tool registry and invoker.

Holds the tools offered to the model and turns the tool uses in an
assistant Message into ToolResults. Invocation never raises for tool
failures: a missing tool or an implementation error becomes an error
result the model can react to.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from anthropic_tools.exceptions import ToolRegistrationError
from anthropic_tools.instrumentation import MetricsCollector, record_safely
from anthropic_tools.models import ToolResult, ToolUseBlock

if TYPE_CHECKING:
    from anthropic_tools.tools.tool import Tool

logger = logging.getLogger(__name__)

NOT_IMPLEMENTED = "Tool not implemented"


class ToolRegistry:
    """Ordered set of tools with unique names.

    Usage:
        registry = ToolRegistry([weather_tool])
        results = await registry.invoke(message.tool_uses, parallel=True)
    """

    def __init__(
        self,
        tools: Iterable[Tool] = (),
        metrics: MetricsCollector | None = None,
    ):
        self._tools: list[Tool] = []
        self.metrics = metrics or MetricsCollector()
        for item in tools:
            self.register(item)

    def register(self, tool: Tool) -> None:
        """Add a tool.

        Raises:
            ToolRegistrationError: A tool with the same name is registered.
        """
        if self.get(tool.name) is not None:
            raise ToolRegistrationError(
                f"Tool '{tool.name}' is already registered",
                tool_name=tool.name,
            )
        self._tools.append(tool)
        logger.debug("Registered tool: %s", tool.name)

    def get(self, name: str) -> Tool | None:
        """First registered tool with this name, or None."""
        return next((item for item in self._tools if item.name == name), None)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def definitions(self) -> list[dict[str, Any]]:
        """Wire definitions for the request ``tools`` field."""
        return [item.to_dict() for item in self._tools]

    async def invoke(
        self,
        tool_uses: Iterable[ToolUseBlock],
        *,
        parallel: bool = False,
    ) -> list[ToolResult]:
        """Execute tool uses and return one ToolResult per use, in order.

        Args:
            tool_uses: Tool-use blocks from an assistant Message
            parallel: Run all invocations concurrently

        Returns:
            ToolResults aligned with ``tool_uses``
        """
        uses = list(tool_uses)
        if parallel:
            return list(await asyncio.gather(*(self.invoke_one(use) for use in uses)))
        return [await self.invoke_one(use) for use in uses]

    async def invoke_one(self, tool_use: ToolUseBlock) -> ToolResult:
        """Execute a single tool use."""
        found = self.get(tool_use.name)
        if found is None or not found.has_implementation:
            logger.warning("Model requested unavailable tool: %s", tool_use.name)
            return ToolResult(tool_use_id=tool_use.id, content=NOT_IMPLEMENTED, is_error=True)

        start = time.perf_counter()
        try:
            content = await found.call(tool_use.input)
        except Exception as e:
            logger.warning("Tool %s failed: %s", tool_use.name, e)
            return ToolResult(tool_use_id=tool_use.id, content=str(e), is_error=True)
        finally:
            record_safely(
                self.metrics.record_tool_usage,
                tool_name=tool_use.name,
                duration=time.perf_counter() - start,
            )
        return ToolResult(tool_use_id=tool_use.id, content=content)
