"""Streaming session: one in-flight streaming request, end to end.

The session opens the stream through a caller-supplied factory, pumps
decoded events through a TurnAccumulator, dispatches observer callbacks
and yields the final Message. It supports both push-style consumption
(``on`` handlers plus ``final_message()``) and pull-style consumption
(``async for event in session`` / ``text_stream()``).

Cancellation is cooperative: ``abort()`` flips a StreamController flag
that the pump checks after each processed event. It never interrupts an
in-flight read.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any

from anthropic_tools.exceptions import IncompleteStreamError
from anthropic_tools.streaming.accumulator import TurnAccumulator
from anthropic_tools.streaming.decoder import decode_events
from anthropic_tools.streaming.events import ContentBlockDelta, StreamEventKind, TextDelta

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from anthropic_tools.models import Message
    from anthropic_tools.streaming.events import ProtocolEvent

logger = logging.getLogger(__name__)


class StreamController:
    """Set-once cancellation flag shared by a session and its caller."""

    def __init__(self) -> None:
        self._aborted = False

    def abort(self) -> None:
        self._aborted = True

    @property
    def aborted(self) -> bool:
        return self._aborted


@dataclass
class StreamResponse:
    """An opened streaming HTTP response.

    Attributes:
        chunks: Async iterator over the raw SSE body, split anywhere.
        request_id: Request id header value, if the response carried one.
    """

    chunks: AsyncIterator[bytes | str]
    request_id: str | None = None


class StreamingSession:
    """Own one streaming request from submission to final Message.

    Handler policy: one handler per event kind. Registering a second
    handler for the same kind replaces the first (last registration wins).
    Handlers may be plain callables or coroutine functions; coroutines are
    awaited before the next event is processed.

    Usage::

        session = client.stream(messages)
        session.on("text", lambda text: print(text, end=""))
        message = await session.final_message()
    """

    def __init__(
        self,
        open_stream: Callable[[], AbstractAsyncContextManager[StreamResponse]],
        *,
        controller: StreamController | None = None,
        on_complete: Callable[[Message], None] | None = None,
    ) -> None:
        """Initialize the session. Nothing is sent until it is consumed.

        Args:
            open_stream: Factory returning an async context manager that
                submits the request and yields a StreamResponse.
            controller: Optional shared cancellation flag.
            on_complete: Called with the Message once message_stop is
                folded (not called after abort or failure).
        """
        self._open_stream = open_stream
        self.controller = controller or StreamController()
        self._on_complete = on_complete
        self._accumulator = TurnAccumulator()
        self._handlers: dict[StreamEventKind, Callable[[Any], Any]] = {}
        for kind in StreamEventKind:
            self._accumulator.subscribe(kind, partial(self._dispatch, kind))

        self._events: AsyncGenerator[ProtocolEvent, None] | None = None
        self._lock = asyncio.Lock()
        self._message: Message | None = None
        self._error: Exception | None = None
        self._request_id: str | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def on(self, kind: StreamEventKind | str, handler: Callable[[Any], Any]) -> StreamingSession:
        """Register the handler for an event kind (last registration wins).

        Raises:
            ValueError: ``kind`` is not a StreamEventKind value.
        """
        self._handlers[StreamEventKind(kind)] = handler
        return self

    def abort(self) -> None:
        """Request cooperative cancellation; takes effect at the next event boundary."""
        self.controller.abort()

    @property
    def aborted(self) -> bool:
        return self.controller.aborted

    @property
    def request_id(self) -> str | None:
        return self._request_id

    async def final_message(self) -> Message:
        """Consume the stream and return the Message.

        Returns the complete Message after message_stop, or after abort()
        the partial snapshot (``stop_reason`` None). Repeated calls return
        the same Message or re-raise the same error.

        Raises:
            APIError: Transport or HTTP failure (including mid-stream drops).
            StreamProtocolError: The event sequence was structurally invalid.
            IncompleteStreamError: The stream ended before message_stop.
        """
        async with self._lock:
            if self._message is None and self._error is None:
                try:
                    async for _ in self._iterate():
                        pass
                    self._message = self._finalize()
                except Exception as e:
                    self._error = e
            if self._error is not None:
                raise self._error
            assert self._message is not None
            return self._message

    def __aiter__(self) -> AsyncIterator[ProtocolEvent]:
        return self._iterate()

    async def text_stream(self) -> AsyncGenerator[str, None]:
        """Yield text fragments as they arrive."""
        async for event in self._iterate():
            if isinstance(event, ContentBlockDelta) and isinstance(event.delta, TextDelta):
                yield event.delta.text

    async def close(self) -> None:
        """Release the underlying response if the stream was left unfinished."""
        if self._events is not None:
            await self._events.aclose()

    async def __aenter__(self) -> StreamingSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Pump
    # -------------------------------------------------------------------------

    def _iterate(self) -> AsyncGenerator[ProtocolEvent, None]:
        if self._events is None:
            self._events = self._pump()
        return self._events

    def _dispatch(self, kind: StreamEventKind, payload: Any) -> Any:
        handler = self._handlers.get(kind)
        if handler is None:
            return None
        outcome = handler(payload)
        return outcome if inspect.isawaitable(outcome) else None

    async def _pump(self) -> AsyncGenerator[ProtocolEvent, None]:
        if self.controller.aborted:
            logger.debug("Stream aborted before the request was sent")
            return

        try:
            async with self._open_stream() as response:
                self._request_id = response.request_id
                async for event in decode_events(response.chunks):
                    for pending in self._accumulator.on_event(event):
                        await pending
                    yield event
                    if self.controller.aborted:
                        logger.debug("Stream aborted after %s", type(event).__name__)
                        break
        except Exception as e:
            # Kept so final_message() after a failed async-for re-raises it
            self._error = e
            raise

        if self._accumulator.done and self._on_complete is not None:
            self._on_complete(self._accumulator.result())

    def _finalize(self) -> Message:
        if self._accumulator.done:
            message = self._accumulator.result()
        elif self.controller.aborted:
            message = self._accumulator.snapshot()
        else:
            raise IncompleteStreamError(
                f"Stream ended before message_stop (state: {self._accumulator.state})",
                correlation_id=self._request_id,
            )
        return message.model_copy(update={"request_id": self._request_id})
