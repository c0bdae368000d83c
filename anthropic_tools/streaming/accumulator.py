"""Turn accumulator: fold protocol events into one complete Message.

The accumulator is a strict state machine::

    NOT_STARTED --message_start--> STARTED
    STARTED     --content_block_start/delta/stop (per index)--> STARTED
    STARTED     --message_delta--> FINALIZING
    STARTED | FINALIZING --message_stop--> DONE

Unlike the decoder, which skips malformed frames, structural violations
here are hard failures: a delta or stop for an index that was never
started, a block opened twice, message-level events while a block is
open, or anything after message_stop all raise StreamProtocolError.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from anthropic_tools.exceptions import (
    IncompleteMessageError,
    StreamProtocolError,
    ToolInputDecodeError,
)
from anthropic_tools.models import Message, TextBlock, ToolUseBlock, Usage, parse_usage
from anthropic_tools.streaming.events import (
    ContentBlockDelta,
    ContentBlockStart,
    ContentBlockStop,
    InputJSONDelta,
    MessageDelta,
    MessageStart,
    MessageStop,
    StreamEventKind,
    TextDelta,
    Unrecognized,
    UnrecognizedDelta,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from anthropic_tools.streaming.events import ProtocolEvent

logger = logging.getLogger(__name__)


class AccumulatorState(StrEnum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class _OpenBlock:
    """A content block between its start and stop events."""

    index: int
    block_type: str
    partial: dict[str, Any]
    fragments: list[str] = field(default_factory=list)

    def text_so_far(self) -> str:
        return (self.partial.get("text") or "") + "".join(self.fragments)


class TurnAccumulator:
    """Fold an ordered ProtocolEvent sequence into exactly one Message.

    Observers registered with ``subscribe`` are called synchronously from
    ``on_event`` in event order. Whatever an observer returns is collected
    and handed back from ``on_event`` so an async caller can await it.

    Usage::

        acc = TurnAccumulator()
        acc.subscribe(StreamEventKind.TEXT, print)
        async for event in decode_events(response.aiter_bytes()):
            acc.on_event(event)
        message = acc.result()
    """

    def __init__(self) -> None:
        self.state = AccumulatorState.NOT_STARTED
        self._id = ""
        self._model = ""
        self._role = "assistant"
        self._usage = Usage()
        self._stop_reason: str | None = None
        self._stop_sequence: str | None = None
        self._open: dict[int, _OpenBlock] = {}
        # index -> sealed block; None for block types the Message does not model
        self._sealed: dict[int, TextBlock | ToolUseBlock | None] = {}
        self._observers: dict[str, list[Callable[[Any], Any]]] = defaultdict(list)
        self._result: Message | None = None

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, kind: StreamEventKind | str, callback: Callable[[Any], Any]) -> None:
        """Register an observer for one notification kind.

        Payloads per kind: MESSAGE_START/CONTENT_BLOCK_START/... receive the
        event itself; TEXT receives the text fragment; INPUT_JSON the raw
        JSON fragment; TOOL_USE_START the partial block dict; TOOL_USE and
        CONTENT_BLOCK_STOP the sealed block (None for unmodelled types on
        CONTENT_BLOCK_STOP).
        """
        self._observers[StreamEventKind(kind)].append(callback)

    def _notify(self, kind: StreamEventKind, payload: Any, results: list[Any]) -> None:
        for callback in self._observers.get(kind, ()):
            outcome = callback(payload)
            if outcome is not None:
                results.append(outcome)

    # -------------------------------------------------------------------------
    # Folding
    # -------------------------------------------------------------------------

    @property
    def done(self) -> bool:
        return self.state is AccumulatorState.DONE

    def on_event(self, event: ProtocolEvent) -> list[Any]:
        """Advance the state machine by one event.

        Returns:
            Non-None values returned by observers (e.g. coroutines).

        Raises:
            StreamProtocolError: The event is not valid in the current state.
        """
        results: list[Any] = []

        if isinstance(event, Unrecognized):
            logger.debug("Ignoring unrecognized stream event %r", event.event_type)
            return results

        if self.state is AccumulatorState.DONE:
            raise StreamProtocolError(f"Received {type(event).__name__} after message_stop")

        if isinstance(event, MessageStart):
            self._on_message_start(event, results)
        elif self.state is AccumulatorState.NOT_STARTED:
            raise StreamProtocolError(f"Received {type(event).__name__} before message_start")
        elif isinstance(event, ContentBlockStart):
            self._on_block_start(event, results)
        elif isinstance(event, ContentBlockDelta):
            self._on_block_delta(event, results)
        elif isinstance(event, ContentBlockStop):
            self._on_block_stop(event, results)
        elif isinstance(event, MessageDelta):
            self._on_message_delta(event, results)
        elif isinstance(event, MessageStop):
            self._on_message_stop(event, results)
        else:
            raise StreamProtocolError(f"Unhandled event type {type(event).__name__}")

        return results

    def _on_message_start(self, event: MessageStart, results: list[Any]) -> None:
        if self.state is not AccumulatorState.NOT_STARTED:
            raise StreamProtocolError("Received a second message_start")
        self._id = event.id
        self._model = event.model
        self._role = event.role
        self._usage = parse_usage(event.usage)
        self.state = AccumulatorState.STARTED
        self._notify(StreamEventKind.MESSAGE_START, event, results)

    def _on_block_start(self, event: ContentBlockStart, results: list[Any]) -> None:
        if self.state is not AccumulatorState.STARTED:
            raise StreamProtocolError(
                f"content_block_start for index {event.index} after message_delta"
            )
        if event.index in self._open:
            raise StreamProtocolError(f"Content block {event.index} is already open")
        if event.index in self._sealed:
            raise StreamProtocolError(f"Content block {event.index} was already closed")

        self._open[event.index] = _OpenBlock(
            index=event.index,
            block_type=event.block_type,
            partial=dict(event.partial_block),
        )
        self._notify(StreamEventKind.CONTENT_BLOCK_START, event, results)
        if event.block_type == "tool_use":
            self._notify(StreamEventKind.TOOL_USE_START, dict(event.partial_block), results)

    def _open_block(self, index: int, event_name: str) -> _OpenBlock:
        block = self._open.get(index)
        if block is None:
            raise StreamProtocolError(f"{event_name} for content block {index} with no open block")
        return block

    def _on_block_delta(self, event: ContentBlockDelta, results: list[Any]) -> None:
        block = self._open_block(event.index, "content_block_delta")
        delta = event.delta

        if isinstance(delta, TextDelta):
            if block.block_type != "text":
                raise StreamProtocolError(
                    f"text_delta for {block.block_type} block {event.index}"
                )
            block.fragments.append(delta.text)
            self._notify(StreamEventKind.CONTENT_BLOCK_DELTA, event, results)
            self._notify(StreamEventKind.TEXT, delta.text, results)
        elif isinstance(delta, InputJSONDelta):
            if block.block_type != "tool_use":
                raise StreamProtocolError(
                    f"input_json_delta for {block.block_type} block {event.index}"
                )
            block.fragments.append(delta.partial_json)
            self._notify(StreamEventKind.CONTENT_BLOCK_DELTA, event, results)
            self._notify(StreamEventKind.INPUT_JSON, delta.partial_json, results)
        elif isinstance(delta, UnrecognizedDelta):
            logger.debug(
                "Ignoring %r delta for content block %d", delta.delta_type, event.index
            )
            self._notify(StreamEventKind.CONTENT_BLOCK_DELTA, event, results)

    def _on_block_stop(self, event: ContentBlockStop, results: list[Any]) -> None:
        block = self._open_block(event.index, "content_block_stop")
        sealed = self._seal(block)
        del self._open[event.index]
        self._sealed[event.index] = sealed

        self._notify(StreamEventKind.CONTENT_BLOCK_STOP, sealed, results)
        if isinstance(sealed, ToolUseBlock):
            self._notify(StreamEventKind.TOOL_USE, sealed, results)

    def _seal(self, block: _OpenBlock) -> TextBlock | ToolUseBlock | None:
        if block.block_type == "text":
            return TextBlock(text=block.text_so_far())

        if block.block_type == "tool_use":
            raw = "".join(block.fragments)
            if raw:
                try:
                    tool_input = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ToolInputDecodeError(
                        f"Tool input for content block {block.index} is not valid JSON: {e}",
                        index=block.index,
                        raw=raw,
                    ) from e
            else:
                tool_input = block.partial.get("input") or {}
            return ToolUseBlock(
                id=block.partial.get("id") or "",
                name=block.partial.get("name") or "",
                input=tool_input,
            )

        logger.debug("Dropping content block %d of type %r", block.index, block.block_type)
        return None

    def _ensure_no_open_blocks(self, event_name: str) -> None:
        if self._open:
            indices = ", ".join(str(i) for i in sorted(self._open))
            raise StreamProtocolError(f"{event_name} while content blocks are open: {indices}")

    def _on_message_delta(self, event: MessageDelta, results: list[Any]) -> None:
        self._ensure_no_open_blocks("message_delta")
        if event.stop_reason is not None:
            self._stop_reason = event.stop_reason
        if event.stop_sequence is not None:
            self._stop_sequence = event.stop_sequence
        if event.usage:
            self._usage = parse_usage(event.usage, base=self._usage)
        self.state = AccumulatorState.FINALIZING
        self._notify(StreamEventKind.MESSAGE_DELTA, event, results)

    def _on_message_stop(self, event: MessageStop, results: list[Any]) -> None:
        self._ensure_no_open_blocks("message_stop")
        self.state = AccumulatorState.DONE
        self._notify(StreamEventKind.MESSAGE_STOP, event, results)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def _build(self, content: list[TextBlock | ToolUseBlock], stop_reason: str | None) -> Message:
        return Message(
            id=self._id,
            model=self._model,
            role=self._role,
            content=tuple(content),
            stop_reason=stop_reason,
            stop_sequence=self._stop_sequence if stop_reason is not None else None,
            usage=self._usage,
        )

    def result(self) -> Message:
        """Return the finalized Message.

        Raises:
            IncompleteMessageError: message_stop has not been received yet.
        """
        if self.state is not AccumulatorState.DONE:
            raise IncompleteMessageError(f"Message is not complete (state: {self.state})")
        if self._result is None:
            content = [block for _, block in sorted(self._sealed.items()) if block is not None]
            self._result = self._build(content, self._stop_reason)
        return self._result

    def snapshot(self) -> Message:
        """Return the structurally valid part of an unfinished message.

        Sealed blocks are included, open text blocks contribute the text
        received so far, open tool-use blocks are left out (their input is
        incomplete JSON). ``stop_reason`` is always None.
        """
        blocks: dict[int, TextBlock | ToolUseBlock] = {
            index: block for index, block in self._sealed.items() if block is not None
        }
        for index, block in self._open.items():
            if block.block_type == "text":
                blocks[index] = TextBlock(text=block.text_so_far())
        return self._build([block for _, block in sorted(blocks.items())], None)
