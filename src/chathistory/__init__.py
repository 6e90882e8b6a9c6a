"""
chathistory - an ordered, validated conversation log that survives save/load.

This library provides:
- Message, Role and content parts (text, tool call requests, tool results)
- ChatHistory: an append-only log that keeps tool calls linked to their results
- Serialization: deterministic JSON encoding that re-validates on decode
- CompletionEngine: the contract for engines that continue a conversation

Quick Start:
    from chathistory import ChatHistory, ToolCallRequestPart, decode_history, encode_history

    history = ChatHistory()
    history.user("Make me a special poem")
    history.assistant(tool_calls=[ToolCallRequestPart(call_id="c1", tool_name="CreateSpecialPoem")])
    history.tool("c1", "ABCDE")

    restored = decode_history(encode_history(history))
    assert restored == history
"""

from .engine import CompletionEngine, ExecutionSettings, ToolCallBehavior, continue_conversation
from .errors import ChatHistoryError, DanglingToolCall, DecodeFailure, InvalidMessageShape
from .history import ChatHistory, MessagesView
from .models import ContentPart, Message, Role, TextPart, ToolCallRequestPart, ToolCallResultPart
from .serialization import (
    CodecOptions,
    decode_history,
    deserialize_history,
    encode_history,
    load_history_from_file,
    save_history_to_file,
    serialize_history,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "Role",
    "Message",
    "ContentPart",
    "TextPart",
    "ToolCallRequestPart",
    "ToolCallResultPart",
    # History
    "ChatHistory",
    "MessagesView",
    # Serialization
    "CodecOptions",
    "encode_history",
    "decode_history",
    "serialize_history",
    "deserialize_history",
    "save_history_to_file",
    "load_history_from_file",
    # Completion engine
    "CompletionEngine",
    "ExecutionSettings",
    "ToolCallBehavior",
    "continue_conversation",
    # Errors
    "ChatHistoryError",
    "InvalidMessageShape",
    "DanglingToolCall",
    "DecodeFailure",
    # Version
    "__version__",
]
