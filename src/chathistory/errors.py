"""
Exceptions raised by chathistory.

All errors derive from ChatHistoryError so callers can catch the whole family,
and from ValueError because every failure is a rejected input.
"""

from typing import Any


class ChatHistoryError(Exception):
    """Base class for chat history errors."""


class InvalidMessageShape(ChatHistoryError, ValueError):
    """
    A message's role and content parts don't fit together, or a field is malformed.

    Attributes:
        errors: Underlying pydantic error details, when validation produced them
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class DanglingToolCall(ChatHistoryError, ValueError):
    """
    A tool call linkage would be broken by an append.

    Raised when a tool result references a call id that was never requested
    (or was already resolved), or when a request re-opens a call id that is
    still waiting for its result.

    Attributes:
        call_id: The offending call id
        index: Position the rejected message would have taken
    """

    def __init__(self, message: str, call_id: str, index: int):
        self.call_id = call_id
        self.index = index
        super().__init__(message)


class DecodeFailure(ChatHistoryError, ValueError):
    """Encoded history bytes could not be parsed."""


__all__ = ["ChatHistoryError", "InvalidMessageShape", "DanglingToolCall", "DecodeFailure"]
