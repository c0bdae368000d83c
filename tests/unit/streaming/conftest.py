"""Shared fixtures for streaming module tests."""

from contextlib import asynccontextmanager

from anthropic_tools.streaming.session import StreamResponse


async def async_iter(items):
    """Convert a list to an async iterator."""
    for item in items:
        yield item


async def failing_iter(items, error: Exception):
    """Yield ``items`` then raise ``error``, like a connection dropping mid-stream."""
    for item in items:
        yield item
    raise error


def opener(chunks, request_id: str | None = "req_123", calls: list | None = None):
    """Build an ``open_stream`` factory serving fixed chunks.

    Each call to the factory is recorded in ``calls`` when given.
    """

    @asynccontextmanager
    async def _open():
        if calls is not None:
            calls.append(1)
        source = chunks if hasattr(chunks, "__aiter__") else async_iter(chunks)
        yield StreamResponse(chunks=source, request_id=request_id)

    return _open
