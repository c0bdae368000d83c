"""Event decoder: turn a raw SSE byte stream into protocol events.

``decode_events`` consumes an async iterable of chunks as the transport
delivers them (``httpx.Response.aiter_bytes()``). Chunk boundaries are
arbitrary: a chunk may hold several lines, part of a line, or part of a
multibyte character, so everything is re-split into lines first. Only
``data:`` lines matter: ``event:`` lines, comments and blank separators
are ignored.

Frames whose payload is not a JSON object are skipped (the wire may
carry heartbeats). ``data: [DONE]`` ends the sequence; so does the input
running out. Transport failures raised by the source propagate
unchanged, so callers can tell a truncated stream from a finished one.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import TYPE_CHECKING, Any

from anthropic_tools.streaming.events import ProtocolEvent, parse_event

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterable

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


async def iter_chunk_lines(
    chunks: AsyncIterable[bytes | str],
) -> AsyncGenerator[str, None]:
    """Split arbitrarily sized chunks into lines, carrying partial lines over."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, (bytes, bytearray)) else chunk
        *complete, buffer = buffer.split("\n")
        for line in complete:
            yield line.rstrip("\r")
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.rstrip("\r")


def decode_frame(line: str) -> dict[str, Any] | str | None:
    """Decode a single SSE line.

    Returns:
        The JSON object for a data frame, ``DONE_SENTINEL`` for the
        terminator, or None for lines that carry no event.
    """
    line = line.strip()
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :].strip()
    if not payload:
        return None
    if payload == DONE_SENTINEL:
        return DONE_SENTINEL

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream frame: %s", payload[:200])
        return None

    if not isinstance(data, dict):
        logger.debug("Skipping non-object stream frame: %s", payload[:200])
        return None
    return data


async def decode_events(
    chunks: AsyncIterable[str | bytes],
) -> AsyncGenerator[ProtocolEvent, None]:
    """Lazily decode protocol events from an SSE stream.

    Args:
        chunks: Async iterable of raw bytes or text, split anywhere.

    Yields:
        ProtocolEvent instances in arrival order.

    Raises:
        StreamProtocolError: A known event is missing a required field.
    """
    async for line in iter_chunk_lines(chunks):
        frame = decode_frame(line)
        if frame is None:
            continue
        if frame == DONE_SENTINEL:
            return
        yield parse_event(frame)  # type: ignore[arg-type]
