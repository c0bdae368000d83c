"""Typed models for Messages API payloads.

Content blocks, assistant messages, user turns and tool results. All
models are frozen: a Message handed to a caller is an immutable snapshot.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from anthropic_tools.exceptions import APIError

logger = logging.getLogger(__name__)

# =============================================================================
# CONTENT BLOCKS
# =============================================================================


class TextBlock(BaseModel):
    """A run of assistant text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    """A model-issued request to invoke a tool."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


ContentBlock = Annotated[TextBlock | ToolUseBlock, Field(discriminator="type")]


class Usage(BaseModel):
    """Token accounting for one response."""

    model_config = ConfigDict(frozen=True, extra="allow")

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# =============================================================================
# MESSAGES
# =============================================================================


class Message(BaseModel):
    """A complete assistant turn.

    Built either from a single non-streaming response body or by the
    TurnAccumulator once a stream reaches message_stop. Fields the API
    returns that are not modelled here are kept in ``model_extra``.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = ""
    model: str = ""
    role: str = "assistant"
    content: tuple[ContentBlock, ...] = ()
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)
    request_id: str | None = None

    @property
    def text(self) -> str:
        """All text blocks joined in order."""
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def has_tool_use(self) -> bool:
        return any(isinstance(block, ToolUseBlock) for block in self.content)

    def to_param(self) -> dict[str, Any]:
        """Render as a request ``messages[]`` entry for resubmission."""
        return {
            "role": self.role,
            "content": [block.model_dump() for block in self.content],
        }


class ToolResult(BaseModel):
    """The outcome of executing one tool use."""

    model_config = ConfigDict(frozen=True)

    tool_use_id: str
    content: Any = ""
    is_error: bool = False

    def to_param(self) -> dict[str, Any]:
        """Render as a ``tool_result`` content block."""
        result: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": _tool_result_content(self.content),
        }
        if self.is_error:
            result["is_error"] = True
        return result


def _tool_result_content(content: Any) -> Any:
    """Normalise tool output into what the API accepts.

    Lists of typed content blocks pass through; strings pass through;
    anything else is JSON encoded (falling back to str()).
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content and all(
        isinstance(item, dict) and "type" in item for item in content
    ):
        return [dict(item) for item in content]
    try:
        return json.dumps(content)
    except (TypeError, ValueError):
        return str(content)


class UserMessage(BaseModel):
    """A user turn in a conversation transcript.

    Either plain content (a string or a list of content blocks), tool
    results for the previous assistant turn, or both.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    content: str | tuple[dict[str, Any], ...] = ()
    tool_results: tuple[ToolResult, ...] = ()

    def to_param(self) -> dict[str, Any]:
        blocks: list[dict[str, Any]]
        if isinstance(self.content, str):
            blocks = [{"type": "text", "text": self.content}] if self.content else []
        else:
            blocks = [dict(block) for block in self.content]
        blocks.extend(result.to_param() for result in self.tool_results)
        return {"role": self.role, "content": blocks}


class AssistantMessage(BaseModel):
    """A hand-written assistant turn (e.g. few-shot priming)."""

    model_config = ConfigDict(frozen=True)

    role: Literal["assistant"] = "assistant"
    content: str | tuple[dict[str, Any], ...] = ""

    def to_param(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": [{"type": "text", "text": self.content}]}
        return {"role": self.role, "content": [dict(block) for block in self.content]}


TranscriptEntry = UserMessage | AssistantMessage | Message


class TokenCount(BaseModel):
    """Result of a count_tokens call."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int
    request_id: str | None = None


# =============================================================================
# PARSING
# =============================================================================


_MESSAGE_FIELDS = frozenset(Message.model_fields)


def parse_usage(data: dict[str, Any] | None, base: Usage | None = None) -> Usage:
    """Parse a usage object, layering non-null counts over ``base``."""
    merged: dict[str, Any] = base.model_dump() if base is not None else {}
    for key, value in (data or {}).items():
        if value is not None:
            merged[key] = value
    return Usage(**merged)


def parse_content_block(
    data: dict[str, Any],
    *,
    body: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> TextBlock | ToolUseBlock | None:
    """Parse one response content block; unknown block types return None.

    Raises:
        APIError: A tool_use block lacks its id or name. The error carries
            ``body`` (the whole response, when given) and ``request_id``.
    """
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=data.get("text") or "")
    if block_type == "tool_use":
        missing = [key for key in ("id", "name") if not data.get(key)]
        if missing:
            raise APIError(
                f"Malformed tool_use block: missing {' and '.join(missing)}",
                body=body if body is not None else data,
                request_id=request_id,
            )
        return ToolUseBlock(id=data["id"], name=data["name"], input=data.get("input") or {})
    logger.debug("Ignoring content block of unsupported type %r", block_type)
    return None


def parse_message(body: dict[str, Any], request_id: str | None = None) -> Message:
    """Parse a non-streaming Messages API response body into a Message."""
    blocks = []
    for raw in body.get("content") or []:
        block = parse_content_block(raw, body=body, request_id=request_id)
        if block is not None:
            blocks.append(block)

    extra = {key: value for key, value in body.items() if key not in _MESSAGE_FIELDS}

    return Message(
        id=body.get("id") or "",
        model=body.get("model") or "",
        role=body.get("role") or "assistant",
        content=tuple(blocks),
        stop_reason=body.get("stop_reason"),
        stop_sequence=body.get("stop_sequence"),
        usage=parse_usage(body.get("usage")),
        request_id=request_id,
        **extra,
    )
