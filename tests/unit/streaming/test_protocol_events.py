"""Unit tests for protocol event parsing.

Each decoded JSON frame maps to exactly one typed event; known events
missing required fields are protocol errors, unknown types are
preserved as Unrecognized.
"""

import pytest

from tests.helpers import sse


class TestParseEvent:
    def test_message_start(self):
        from anthropic_tools.streaming.events import MessageStart, parse_event

        event = parse_event(sse.message_start(msg_id="msg_abc", model="claude-x"))
        assert isinstance(event, MessageStart)
        assert event.id == "msg_abc"
        assert event.model == "claude-x"
        assert event.role == "assistant"
        assert event.usage == {"input_tokens": 10, "output_tokens": 1}

    def test_content_block_start_keeps_partial_block(self):
        from anthropic_tools.streaming.events import ContentBlockStart, parse_event

        event = parse_event(sse.tool_start(2, "toolu_1", "get_weather"))
        assert isinstance(event, ContentBlockStart)
        assert event.index == 2
        assert event.block_type == "tool_use"
        assert event.partial_block["name"] == "get_weather"

    def test_text_delta(self):
        from anthropic_tools.streaming.events import ContentBlockDelta, TextDelta, parse_event

        event = parse_event(sse.text_delta("Hi", index=0))
        assert isinstance(event, ContentBlockDelta)
        assert event.delta == TextDelta(text="Hi")

    def test_input_json_delta(self):
        from anthropic_tools.streaming.events import InputJSONDelta, parse_event

        event = parse_event(sse.json_delta('{"city": ', 1))
        assert event.delta == InputJSONDelta(partial_json='{"city": ')

    def test_unknown_delta_type_is_preserved(self):
        from anthropic_tools.streaming.events import UnrecognizedDelta, parse_event

        event = parse_event(
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "thinking_delta", "thinking": "hmm"},
            }
        )
        assert isinstance(event.delta, UnrecognizedDelta)
        assert event.delta.delta_type == "thinking_delta"

    def test_message_delta_reads_top_level_usage(self):
        from anthropic_tools.streaming.events import MessageDelta, parse_event

        event = parse_event(sse.message_delta("max_tokens", output_tokens=42))
        assert isinstance(event, MessageDelta)
        assert event.stop_reason == "max_tokens"
        assert event.usage == {"output_tokens": 42}

    def test_message_stop(self):
        from anthropic_tools.streaming.events import MessageStop, parse_event

        assert isinstance(parse_event(sse.message_stop()), MessageStop)

    def test_unknown_type_is_unrecognized(self):
        from anthropic_tools.streaming.events import Unrecognized, parse_event

        event = parse_event({"type": "ping"})
        assert isinstance(event, Unrecognized)
        assert event.event_type == "ping"

    def test_missing_index_is_protocol_error(self):
        from anthropic_tools.exceptions import StreamProtocolError
        from anthropic_tools.streaming.events import parse_event

        with pytest.raises(StreamProtocolError, match="index"):
            parse_event({"type": "content_block_stop"})

    def test_non_integer_index_is_protocol_error(self):
        from anthropic_tools.exceptions import StreamProtocolError
        from anthropic_tools.streaming.events import parse_event

        with pytest.raises(StreamProtocolError):
            parse_event({"type": "content_block_stop", "index": "0"})

    def test_message_start_without_message_is_protocol_error(self):
        from anthropic_tools.exceptions import StreamProtocolError
        from anthropic_tools.streaming.events import parse_event

        with pytest.raises(StreamProtocolError, match="message"):
            parse_event({"type": "message_start"})

    def test_events_are_frozen(self):
        from dataclasses import FrozenInstanceError

        from anthropic_tools.streaming.events import ContentBlockStop

        event = ContentBlockStop(index=0)
        with pytest.raises(FrozenInstanceError):
            event.index = 1  # type: ignore[misc]
