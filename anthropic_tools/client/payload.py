"""Request payload construction for the Messages API."""

from collections.abc import Iterable, Mapping
from typing import Any

from anthropic_tools.client.config import ClientConfig
from anthropic_tools.tools.registry import ToolRegistry
from anthropic_tools.tools.tool import Tool

TOOL_CHOICE_TYPES = frozenset({"auto", "any", "none"})


def normalize_tool_choice(
    tool_choice: str | Mapping[str, Any] | None,
    disable_parallel_tool_use: bool | None = None,
) -> dict[str, Any] | None:
    """Normalise the caller's tool_choice into the wire dict.

    Accepts ``"auto"``, ``"any"``, ``"none"``, ``{"tool": name}`` or a
    ready wire dict. ``disable_parallel_tool_use`` is merged in; with no
    tool_choice it implies ``{"type": "auto"}``.

    Raises:
        ValueError: Unrecognised tool_choice.
    """
    if tool_choice is None:
        if disable_parallel_tool_use is None:
            return None
        choice: dict[str, Any] = {"type": "auto"}
    elif isinstance(tool_choice, str):
        if tool_choice not in TOOL_CHOICE_TYPES:
            raise ValueError(
                f"tool_choice must be one of {sorted(TOOL_CHOICE_TYPES)} or a dict, "
                f"got {tool_choice!r}"
            )
        choice = {"type": tool_choice}
    elif isinstance(tool_choice, Mapping):
        if "type" in tool_choice:
            choice = dict(tool_choice)
        elif "tool" in tool_choice:
            choice = {"type": "tool", "name": tool_choice["tool"]}
        else:
            raise ValueError(f"tool_choice dict needs 'type' or 'tool': {dict(tool_choice)!r}")
    else:
        raise ValueError(f"Unsupported tool_choice: {tool_choice!r}")

    if disable_parallel_tool_use is not None and choice["type"] != "none":
        choice["disable_parallel_tool_use"] = disable_parallel_tool_use
    return choice


def normalize_messages(messages: Any) -> list[dict[str, Any]]:
    """Render transcript entries as request ``messages[]`` dicts.

    Accepts a single entry or an iterable of entries; an entry is a
    model with ``to_param()``, a ready dict, or a bare string (shorthand
    for a user turn).
    """
    if isinstance(messages, (str, Mapping)) or hasattr(messages, "to_param"):
        messages = [messages]

    rendered = []
    for entry in messages:
        if hasattr(entry, "to_param"):
            rendered.append(entry.to_param())
        elif isinstance(entry, Mapping):
            rendered.append(dict(entry))
        elif isinstance(entry, str):
            rendered.append({"role": "user", "content": [{"type": "text", "text": entry}]})
        else:
            raise TypeError(f"Unsupported message type: {type(entry).__name__}")
    return rendered


def normalize_tools(
    tools: ToolRegistry | Iterable[Tool | Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Render tools as wire definitions; dicts may use the legacy ``parameters`` key."""
    if tools is None:
        return []
    if isinstance(tools, ToolRegistry):
        return tools.definitions()
    return [
        item.to_dict() if isinstance(item, Tool) else Tool.from_dict(item).to_dict()
        for item in tools
    ]


def build_payload(
    config: ClientConfig,
    messages: Any,
    *,
    model: str | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
    system: str | list[dict[str, Any]] | None = None,
    tools: ToolRegistry | Iterable[Tool | Mapping[str, Any]] | None = None,
    tool_choice: str | Mapping[str, Any] | None = None,
    disable_parallel_tool_use: bool | None = None,
    stream: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """Build a Messages API request body.

    ``tools`` and ``tool_choice`` are only sent when at least one tool is
    given. Extra keyword arguments (``stop_sequences``, ``top_p``,
    ``metadata``...) are passed through when not None.
    """
    payload: dict[str, Any] = {
        "model": model or config.model,
        "max_tokens": max_tokens if max_tokens is not None else config.max_tokens,
        "temperature": temperature if temperature is not None else config.temperature,
        "messages": normalize_messages(messages),
    }
    if system:
        payload["system"] = system

    definitions = normalize_tools(tools)
    if definitions:
        payload["tools"] = definitions
        choice = normalize_tool_choice(tool_choice, disable_parallel_tool_use)
        if choice is not None:
            payload["tool_choice"] = choice

    if stream:
        payload["stream"] = True

    payload.update({key: value for key, value in extra.items() if value is not None})
    return payload


def build_count_tokens_payload(
    config: ClientConfig,
    messages: Any,
    *,
    model: str | None = None,
    system: str | list[dict[str, Any]] | None = None,
    tools: ToolRegistry | Iterable[Tool | Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a count_tokens request body (no sampling parameters)."""
    payload: dict[str, Any] = {
        "model": model or config.model,
        "messages": normalize_messages(messages),
    }
    if system:
        payload["system"] = system
    definitions = normalize_tools(tools)
    if definitions:
        payload["tools"] = definitions
    return payload
