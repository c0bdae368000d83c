"""Streaming support: SSE decoding, turn accumulation and sessions.

Pipeline:
    raw chunks -> decode_events -> ProtocolEvent -> TurnAccumulator -> Message

StreamingSession ties the pipeline to one HTTP request and adds
observer callbacks and cooperative cancellation.
"""

from anthropic_tools.streaming.accumulator import AccumulatorState, TurnAccumulator
from anthropic_tools.streaming.decoder import decode_events, decode_frame, iter_chunk_lines
from anthropic_tools.streaming.events import (
    ContentBlockDelta,
    ContentBlockStart,
    ContentBlockStop,
    InputJSONDelta,
    MessageDelta,
    MessageStart,
    MessageStop,
    ProtocolEvent,
    StreamEventKind,
    TextDelta,
    Unrecognized,
    UnrecognizedDelta,
    parse_event,
)
from anthropic_tools.streaming.session import StreamController, StreamingSession, StreamResponse

__all__ = [
    "AccumulatorState",
    "ContentBlockDelta",
    "ContentBlockStart",
    "ContentBlockStop",
    "InputJSONDelta",
    "MessageDelta",
    "MessageStart",
    "MessageStop",
    "ProtocolEvent",
    "StreamController",
    "StreamEventKind",
    "StreamResponse",
    "StreamingSession",
    "TextDelta",
    "TurnAccumulator",
    "Unrecognized",
    "UnrecognizedDelta",
    "decode_events",
    "decode_frame",
    "iter_chunk_lines",
    "parse_event",
]
