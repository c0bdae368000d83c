"""Protocol event types for the Messages streaming wire format.

Each decoded ``data:`` frame becomes exactly one of the frozen
dataclasses below. Consumers dispatch with isinstance checks over the
``ProtocolEvent`` union; unknown discriminators arrive as
``Unrecognized`` so forward-compatible consumers can skip them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from anthropic_tools.exceptions import StreamProtocolError


class StreamEventKind(StrEnum):
    """Names observers can subscribe to on an accumulator or session."""

    MESSAGE_START = "message_start"
    CONTENT_BLOCK_START = "content_block_start"
    CONTENT_BLOCK_DELTA = "content_block_delta"
    CONTENT_BLOCK_STOP = "content_block_stop"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"
    TEXT = "text"
    INPUT_JSON = "input_json"
    TOOL_USE_START = "tool_use_start"
    TOOL_USE = "tool_use"


# =============================================================================
# DELTAS
# =============================================================================


@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str


@dataclass(frozen=True, slots=True)
class InputJSONDelta:
    partial_json: str


@dataclass(frozen=True, slots=True)
class UnrecognizedDelta:
    delta_type: str
    data: dict[str, Any] = field(default_factory=dict)


Delta = TextDelta | InputJSONDelta | UnrecognizedDelta


# =============================================================================
# EVENTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class MessageStart:
    id: str
    model: str
    role: str
    usage: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ContentBlockStart:
    index: int
    block_type: str
    partial_block: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ContentBlockDelta:
    index: int
    delta: Delta


@dataclass(frozen=True, slots=True)
class ContentBlockStop:
    index: int


@dataclass(frozen=True, slots=True)
class MessageDelta:
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class MessageStop:
    pass


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """An event whose ``type`` this client does not model (e.g. ``ping``)."""

    event_type: str
    data: dict[str, Any] = field(default_factory=dict)


ProtocolEvent = (
    MessageStart
    | ContentBlockStart
    | ContentBlockDelta
    | ContentBlockStop
    | MessageDelta
    | MessageStop
    | Unrecognized
)


# =============================================================================
# PARSING
# =============================================================================


def _require(data: dict[str, Any], key: str, event_type: str) -> Any:
    if key not in data or data[key] is None:
        raise StreamProtocolError(f"{event_type} event is missing required field '{key}'")
    return data[key]


def _index(data: dict[str, Any], event_type: str) -> int:
    index = _require(data, "index", event_type)
    if not isinstance(index, int) or isinstance(index, bool):
        raise StreamProtocolError(f"{event_type} event has non-integer index {index!r}")
    return index


def parse_delta(data: dict[str, Any]) -> Delta:
    """Parse the ``delta`` object of a content_block_delta event."""
    delta_type = data.get("type", "")
    if delta_type == "text_delta":
        return TextDelta(text=data.get("text") or "")
    if delta_type == "input_json_delta":
        return InputJSONDelta(partial_json=data.get("partial_json") or "")
    return UnrecognizedDelta(delta_type=delta_type, data=data)


def parse_event(data: dict[str, Any]) -> ProtocolEvent:
    """Map one decoded JSON frame to a ProtocolEvent.

    Args:
        data: The JSON object carried by a ``data:`` frame.

    Returns:
        The typed event; unknown ``type`` values yield ``Unrecognized``.

    Raises:
        StreamProtocolError: A known event type is missing a required field.
    """
    event_type = data.get("type")

    if event_type == "message_start":
        message = _require(data, "message", event_type)
        return MessageStart(
            id=message.get("id") or "",
            model=message.get("model") or "",
            role=message.get("role") or "assistant",
            usage=message.get("usage"),
        )

    if event_type == "content_block_start":
        block = _require(data, "content_block", event_type)
        return ContentBlockStart(
            index=_index(data, event_type),
            block_type=block.get("type") or "",
            partial_block=block,
        )

    if event_type == "content_block_delta":
        return ContentBlockDelta(
            index=_index(data, event_type),
            delta=parse_delta(_require(data, "delta", event_type)),
        )

    if event_type == "content_block_stop":
        return ContentBlockStop(index=_index(data, event_type))

    if event_type == "message_delta":
        delta = data.get("delta") or {}
        # Usage sits at the top level on the wire; older payloads nested it in delta
        usage = data.get("usage") or delta.get("usage")
        return MessageDelta(
            stop_reason=delta.get("stop_reason"),
            stop_sequence=delta.get("stop_sequence"),
            usage=usage,
        )

    if event_type == "message_stop":
        return MessageStop()

    return Unrecognized(event_type=str(event_type or ""), data=data)
