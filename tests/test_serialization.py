"""
Tests for chat history serialization.

Tests the ability to:
1. Encode a history and decode it back into an equal history
2. Produce byte-identical output for the same history
3. Re-validate shape and tool call linkage when decoding
4. Reject malformed input with DecodeFailure
5. Save/load from files
"""

import json
import tempfile
from pathlib import Path

import pytest

from chathistory import (
    ChatHistory,
    CodecOptions,
    DanglingToolCall,
    DecodeFailure,
    InvalidMessageShape,
    Role,
    ToolCallRequestPart,
    ToolCallResultPart,
    decode_history,
    deserialize_history,
    encode_history,
    load_history_from_file,
    save_history_to_file,
    serialize_history,
)


def _document(*messages: dict) -> bytes:
    return json.dumps({"format": "chathistory", "version": 1, "messages": list(messages)}).encode()


def _message(role: str, *parts: dict) -> dict:
    return {"role": role, "content_parts": list(parts)}


class TestRoundTrip:
    """Test Decode(Encode(h)) == h."""

    def test_poem_scenario(self, poem_history):
        restored = decode_history(encode_history(poem_history))

        assert restored.count() == 4
        assert restored == poem_history

        result = restored[2].tool_results[0]
        request = restored[1].tool_calls[0]
        assert result.call_id == "c1"
        assert request.call_id == result.call_id
        assert request.tool_name == "CreateSpecialPoem"
        assert result.result == "ABCDE"
        assert not restored.has_pending_tool_calls

    def test_rich_history(self, rich_history):
        restored = decode_history(encode_history(rich_history))

        assert restored == rich_history
        assert [m.role for m in restored] == [m.role for m in rich_history]
        assert restored[1].author_name == "alice"
        assert restored[1].metadata == rich_history[1].metadata
        assert restored[2].model_id == "gpt-4.1-mini"
        assert restored[1].text == "Weather in Zürich and Tokyo? ☀️"

    def test_payload_types_survive(self, rich_history):
        restored = decode_history(encode_history(rich_history))

        arguments = restored[2].tool_calls[0].arguments
        assert arguments == {"city": "Zürich", "days": 3}
        assert isinstance(arguments["days"], int)

        units = restored[2].tool_calls[1].arguments["units"]
        assert units == [1, 2.5, None]
        assert isinstance(units[0], int) and isinstance(units[1], float)

        weather = restored[3].tool_results[0].result
        assert isinstance(weather["temp"], float)
        assert weather["humid"] is False

        assert restored[1].metadata["flag"] is True
        assert restored[1].metadata["none"] is None

    def test_empty_history(self):
        restored = decode_history(encode_history(ChatHistory()))
        assert restored.count() == 0

    def test_pending_tool_calls_survive(self):
        history = ChatHistory()
        history.user("Look this up")
        history.assistant(tool_calls=[ToolCallRequestPart(call_id="q1", tool_name="search", arguments={"q": "x"})])

        restored = decode_history(encode_history(history))

        assert [c.call_id for c in restored.pending_tool_calls] == ["q1"]
        assert restored.tool("q1", {"hits": 3}) == 2

    def test_bare_list_form(self, poem_history):
        options = CodecOptions(envelope=False)
        data = encode_history(poem_history, options)

        assert isinstance(json.loads(data), list)
        assert decode_history(data, options) == poem_history

    def test_string_helpers(self, poem_history):
        text = serialize_history(poem_history)
        assert isinstance(text, str)
        assert deserialize_history(text) == poem_history


class TestDeterminism:
    """Test that encoding is stable."""

    def test_same_history_same_bytes(self, rich_history):
        assert encode_history(rich_history) == encode_history(rich_history)

    def test_key_order_does_not_matter(self):
        a = ChatHistory()
        a.add_message("user", [{"type": "text", "text": "hi"}], metadata={"x": 1, "y": {"b": 2, "a": 1}})
        b = ChatHistory()
        b.add_message("user", [{"type": "text", "text": "hi"}], metadata={"y": {"a": 1, "b": 2}, "x": 1})

        assert encode_history(a) == encode_history(b)

    def test_reencoding_decoded_history_is_identical(self, rich_history):
        data = encode_history(rich_history)
        assert encode_history(decode_history(data)) == data

    def test_compact_output(self, poem_history):
        data = encode_history(poem_history, CodecOptions(indent=None))
        assert b"\n" not in data
        assert decode_history(data) == poem_history

    def test_ascii_output(self, rich_history):
        data = encode_history(rich_history, CodecOptions(ensure_ascii=True))
        assert data.isascii()
        assert decode_history(data) == rich_history


class TestDecodeValidation:
    """Test that decoding re-checks every invariant."""

    def test_result_before_request_rejected(self):
        data = _document(
            _message("user", {"type": "text", "text": "hi"}),
            _message("tool", {"type": "tool_result", "call_id": "c1", "result": "ABCDE"}),
            _message("assistant", {"type": "tool_call", "call_id": "c1", "tool_name": "CreateSpecialPoem", "arguments": {}}),
        )
        with pytest.raises(DanglingToolCall) as exc_info:
            decode_history(data)
        assert exc_info.value.call_id == "c1"
        assert exc_info.value.index == 1

    def test_hand_edited_call_id_rejected(self, poem_history):
        document = json.loads(encode_history(poem_history))
        document["messages"][2]["content_parts"][0]["call_id"] = "c2"

        with pytest.raises(DanglingToolCall):
            decode_history(json.dumps(document))

    def test_user_tool_call_rejected(self):
        data = _document(_message("user", {"type": "tool_call", "call_id": "c1", "tool_name": "t", "arguments": {}}))
        with pytest.raises(InvalidMessageShape):
            decode_history(data)

    def test_empty_message_rejected(self):
        with pytest.raises(InvalidMessageShape):
            decode_history(_document(_message("assistant")))

    def test_unknown_part_type_rejected(self):
        with pytest.raises(InvalidMessageShape):
            decode_history(_document(_message("user", {"type": "audio", "data": "..."})))

    def test_optional_fields_may_be_omitted(self):
        data = _document(
            _message("assistant", {"type": "tool_call", "call_id": "c1", "tool_name": "t"}),
            _message("tool", {"type": "tool_result", "call_id": "c1"}),
        )
        history = decode_history(data)
        assert history[0].tool_calls[0].arguments == {}
        assert history[1].tool_results == [ToolCallResultPart(call_id="c1", result=None)]
        assert history[1].role is Role.TOOL


class TestDecodeFailure:
    """Test malformed input."""

    @pytest.mark.parametrize(
        "data",
        [
            b"\xff\xfe\x00",
            b"",
            b"{not json",
            b'{"format": "chathistory", "version": 1, "messages": [{"role": "user", "content_parts": [{"type": "text", "text": NaN}]}]}',
            b"[]",
            b'{"format": "other", "version": 1, "messages": []}',
            b'{"format": "chathistory", "version": 2, "messages": []}',
            b'{"format": "chathistory", "version": 1}',
            b'{"format": "chathistory", "version": 1, "messages": ["hello"]}',
            b'{"format": "chathistory", "version": 1, "messages": [], "extra": true}',
        ],
    )
    def test_malformed_input(self, data):
        with pytest.raises(DecodeFailure):
            decode_history(data)

    def test_bare_list_expected(self):
        with pytest.raises(DecodeFailure):
            decode_history(b'{"format": "chathistory", "version": 1, "messages": []}', CodecOptions(envelope=False))

    def test_decode_failure_is_value_error(self):
        with pytest.raises(ValueError):
            decode_history(b"nope")


class TestFileIO:
    """Test saving and loading histories."""

    def test_save_and_load(self, rich_history):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "history.json"
            save_history_to_file(rich_history, path)

            assert path.exists()
            assert json.loads(path.read_text(encoding="utf-8"))["format"] == "chathistory"
            assert load_history_from_file(path) == rich_history

    def test_load_with_matching_options(self, poem_history):
        options = CodecOptions(envelope=False, indent=None)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "history.json"
            save_history_to_file(poem_history, str(path), options)
            assert load_history_from_file(str(path), options) == poem_history

    def test_load_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(FileNotFoundError):
                load_history_from_file(Path(tmpdir) / "missing.json")


class TestEncodableInput:
    """Test that anything the history accepts can be encoded."""

    def test_unencodable_text_never_reaches_the_encoder(self):
        history = ChatHistory()
        with pytest.raises(InvalidMessageShape):
            history.user("bad \ud800 text")

        assert history.count() == 0
        assert decode_history(encode_history(history)) == history

    def test_astral_text_round_trips(self):
        history = ChatHistory()
        history.user("poem 🎉 𝄞")
        history.assistant(tool_calls=[ToolCallRequestPart(call_id="c1", tool_name="echo", arguments={"s": "𝄞"})])

        for options in (CodecOptions(), CodecOptions(ensure_ascii=True)):
            assert decode_history(encode_history(history, options)) == history
