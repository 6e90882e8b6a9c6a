"""
Serialization/deserialization for chat histories.

Histories are encoded as UTF-8 JSON. The default (enveloped) form is:

    {"format": "chathistory", "version": 1, "messages": [...]}

Each message is a dict with role, content_parts, author_name, model_id and
metadata. Content parts carry a "type" tag: "text", "tool_call" or
"tool_result".

Decoding never trusts its input. Messages are rebuilt through
ChatHistory.append, so the encoded form must satisfy the same message shape
and tool call linkage rules as a history built in memory.

Encoding is deterministic: with sort_keys (the default) every mapping is
written in sorted key order; without it, insertion order is kept.
"""

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import DanglingToolCall, DecodeFailure, InvalidMessageShape
from .history import ChatHistory
from .models import ContentPart, Message, TextPart, ToolCallRequestPart, ToolCallResultPart

logger = logging.getLogger(__name__)

FORMAT_NAME = "chathistory"
FORMAT_VERSION = 1


class CodecOptions(BaseModel):
    """
    Formatting options for encoding and decoding.

    Attributes:
        indent: JSON indentation, None for compact output (default: 2)
        sort_keys: Write every mapping in sorted key order (default: True)
        ensure_ascii: Escape non-ASCII characters (default: False)
        envelope: Wrap messages in a versioned envelope; when False the
            encoded form is a bare list of messages (default: True)
    """

    indent: int | None = Field(default=2, ge=0, description="JSON indentation")
    sort_keys: bool = Field(default=True, description="Sort mapping keys")
    ensure_ascii: bool = Field(default=False, description="Escape non-ASCII characters")
    envelope: bool = Field(default=True, description="Wrap messages in a versioned envelope")

    model_config = ConfigDict(frozen=True)


DEFAULT_OPTIONS = CodecOptions()


class _Envelope(BaseModel):
    format: Literal["chathistory"]
    version: int
    messages: list[dict[str, Any]]

    model_config = ConfigDict(extra="forbid")


_bare_messages = TypeAdapter(list[dict[str, Any]])


def encode_part(part: ContentPart) -> dict[str, Any]:
    """Encode a single content part to a JSON-ready dict."""
    if isinstance(part, TextPart):
        return {"type": part.type, "text": part.text}
    elif isinstance(part, ToolCallRequestPart):
        return {"type": part.type, "call_id": part.call_id, "tool_name": part.tool_name, "arguments": part.arguments}
    elif isinstance(part, ToolCallResultPart):
        return {"type": part.type, "call_id": part.call_id, "result": part.result}
    raise TypeError(f"Unknown content part: {type(part).__name__}")


def encode_message(message: Message) -> dict[str, Any]:
    """Encode a message to a JSON-ready dict."""
    return {
        "role": message.role.value,
        "content_parts": [encode_part(part) for part in message.content_parts],
        "author_name": message.author_name,
        "model_id": message.model_id,
        "metadata": message.metadata,
    }


def encode_history(history: ChatHistory, options: CodecOptions | None = None) -> bytes:
    """
    Encode a chat history to bytes.

    Args:
        history: History to encode
        options: Formatting options (default: CodecOptions())

    Returns:
        UTF-8 encoded JSON
    """
    options = options or DEFAULT_OPTIONS
    records = [encode_message(message) for message in history.messages()]
    document: Any = records
    if options.envelope:
        document = {"format": FORMAT_NAME, "version": FORMAT_VERSION, "messages": records}

    text = json.dumps(
        document,
        indent=options.indent,
        sort_keys=options.sort_keys,
        ensure_ascii=options.ensure_ascii,
        allow_nan=False,
    )
    data = text.encode("utf-8")
    logger.info(f"Encoded chat history with {len(records)} messages ({len(data)} bytes)")
    return data


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse(data: bytes | str) -> Any:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeFailure(f"Encoded history is not valid UTF-8: {e}") from e

    try:
        return json.loads(data, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise DecodeFailure(f"Encoded history is not valid JSON: {e}") from e


def _records(document: Any, options: CodecOptions) -> list[dict[str, Any]]:
    if not options.envelope:
        try:
            return _bare_messages.validate_python(document)
        except ValidationError as e:
            raise DecodeFailure(f"Expected a list of message objects: {e}") from e

    if isinstance(document, dict) and document.get("format") == FORMAT_NAME:
        version = document.get("version")
        if version != FORMAT_VERSION:
            raise DecodeFailure(f"Unsupported chat history version: {version!r}")
    try:
        envelope = _Envelope.model_validate(document)
    except ValidationError as e:
        raise DecodeFailure(f"Malformed chat history envelope: {e}") from e
    return envelope.messages


def decode_history(data: bytes | str, options: CodecOptions | None = None) -> ChatHistory:
    """
    Decode a chat history, re-validating every message.

    Args:
        data: Encoded history (bytes or str)
        options: Formatting options; envelope must match the encoded form

    Returns:
        A new ChatHistory equal to the one that was encoded

    Raises:
        DecodeFailure: If the input is not a well-formed encoded history
        InvalidMessageShape: If a message's role and parts don't fit together
        DanglingToolCall: If a tool result has no open request before it
    """
    options = options or DEFAULT_OPTIONS
    records = _records(_parse(data), options)

    history = ChatHistory()
    for index, record in enumerate(records):
        try:
            history.append(Message(**record))
        except InvalidMessageShape as e:
            logger.warning(f"Rejected encoded message {index}: {e}")
            raise
        except DanglingToolCall:
            logger.warning(f"Encoded history breaks tool call linkage at message {index}")
            raise

    logger.info(f"Decoded chat history with {len(history)} messages")
    return history


def serialize_history(history: ChatHistory, options: CodecOptions | None = None) -> str:
    """Serialize a chat history to a JSON string."""
    return encode_history(history, options).decode("utf-8")


def deserialize_history(json_str: str, options: CodecOptions | None = None) -> ChatHistory:
    """Deserialize a chat history from a JSON string."""
    return decode_history(json_str, options)


# File I/O convenience methods


def save_history_to_file(history: ChatHistory, path: str | Path, options: CodecOptions | None = None) -> None:
    """
    Save a chat history to a JSON file.

    Args:
        history: History to save
        path: File path to save to
        options: Formatting options
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_history(history, options))
    logger.info(f"Saved chat history to {path}")


def load_history_from_file(path: str | Path, options: CodecOptions | None = None) -> ChatHistory:
    """
    Load a chat history from a JSON file.

    Args:
        path: File path to load from
        options: Formatting options used when the file was saved

    Returns:
        Loaded ChatHistory
    """
    path = Path(path)
    logger.info(f"Loading chat history from {path}")
    return decode_history(path.read_bytes(), options)


__all__ = [
    "CodecOptions",
    "DEFAULT_OPTIONS",
    "FORMAT_NAME",
    "FORMAT_VERSION",
    "encode_part",
    "encode_message",
    "encode_history",
    "decode_history",
    "serialize_history",
    "deserialize_history",
    "save_history_to_file",
    "load_history_from_file",
]
