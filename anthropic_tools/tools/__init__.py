"""Tool definitions and the registry that invokes them."""

from anthropic_tools.tools.registry import NOT_IMPLEMENTED, ToolRegistry
from anthropic_tools.tools.tool import Tool, define_tool

__all__ = [
    "NOT_IMPLEMENTED",
    "Tool",
    "ToolRegistry",
    "define_tool",
]
