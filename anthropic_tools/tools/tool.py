"""Tool definitions.

A Tool pairs the wire definition the model sees (name, description,
JSON Schema for the input) with an optional local implementation.
Implementations may be plain functions or coroutine functions; plain
functions run in a worker thread so they never block the event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Shorter descriptions tend to produce poor tool selection
MIN_DESCRIPTION_LENGTH = 20


@dataclass(frozen=True)
class Tool:
    """A tool the model may call.

    Attributes:
        name: Unique tool name
        description: What the tool does and when to use it
        input_schema: JSON Schema object describing the tool input
        implementation: Callable receiving the input dict, or None
    """

    name: str
    description: str
    input_schema: Mapping[str, Any]
    implementation: Callable[[dict[str, Any]], Any] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name must not be empty")
        if not self.description:
            raise ValueError(f"Tool '{self.name}' needs a description")
        if not isinstance(self.input_schema, Mapping):
            raise ValueError(f"Tool '{self.name}' needs an input_schema object")
        if len(self.description) < MIN_DESCRIPTION_LENGTH:
            logger.warning(
                "Tool '%s' has a very short description (%d chars); "
                "the model may struggle to decide when to use it",
                self.name,
                len(self.description),
            )

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        input_schema: Mapping[str, Any] | None = None,
        *,
        parameters: Mapping[str, Any] | None = None,
        implementation: Callable[[dict[str, Any]], Any] | None = None,
    ) -> Tool:
        """Build a Tool, accepting ``parameters`` as a legacy name for the schema.

        Raises:
            ValueError: Neither or conflicting schemas were given.
        """
        if input_schema is not None and parameters is not None and input_schema != parameters:
            raise ValueError(f"Tool '{name}' got both input_schema and parameters")
        schema = input_schema if input_schema is not None else parameters
        if schema is None:
            raise ValueError(f"Tool '{name}' needs an input_schema object")
        return cls(
            name=name,
            description=description,
            input_schema=schema,
            implementation=implementation,
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        implementation: Callable[[dict[str, Any]], Any] | None = None,
    ) -> Tool:
        """Build a Tool from a wire-format definition dict."""
        return cls.create(
            name=data.get("name", ""),
            description=data.get("description", ""),
            input_schema=data.get("input_schema"),
            parameters=data.get("parameters"),
            implementation=implementation,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire definition for the request ``tools`` field."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": dict(self.input_schema),
        }

    @property
    def has_implementation(self) -> bool:
        return self.implementation is not None

    async def call(self, tool_input: dict[str, Any]) -> Any:
        """Run the implementation with the model-supplied input.

        Raises:
            NotImplementedError: The tool has no implementation.
        """
        if self.implementation is None:
            raise NotImplementedError(f"No implementation provided for tool {self.name}")
        if inspect.iscoroutinefunction(self.implementation):
            return await self.implementation(tool_input)
        result = await asyncio.to_thread(self.implementation, tool_input)
        if inspect.isawaitable(result):
            result = await result
        return result


def define_tool(
    *,
    input_schema: Mapping[str, Any],
    name: str | None = None,
    description: str | None = None,
) -> Callable[[Callable[[dict[str, Any]], Any]], Tool]:
    """Decorator turning a function into a Tool.

    The name defaults to the function name and the description to its
    docstring.

    Usage:
        @define_tool(input_schema={"type": "object", "properties": {"city": {"type": "string"}}})
        async def get_weather(tool_input):
            \"\"\"Get the current weather for a city.\"\"\"
            ...
    """

    def decorator(func: Callable[[dict[str, Any]], Any]) -> Tool:
        return Tool(
            name=name or func.__name__,
            description=description or inspect.getdoc(func) or "",
            input_schema=input_schema,
            implementation=func,
        )

    return decorator
