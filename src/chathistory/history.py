"""
Chat history management.

Provides:
- ChatHistory: an ordered, validated log of chat messages
- MessagesView: a read-only snapshot of a history's messages
"""

import copy
import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, overload

from pydantic import JsonValue

from .errors import DanglingToolCall, InvalidMessageShape
from .models import ContentPart, Message, Role, ToolCallRequestPart, ToolCallResultPart

logger = logging.getLogger(__name__)


def _copy(message: Message) -> Message:
    return message.model_copy(deep=True)


def _same(a: Any, b: Any) -> bool:
    """Equality that also requires matching types, so 1, 1.0 and True differ."""
    if type(a) is not type(b):
        return False
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(_same(v, b[k]) for k, v in a.items())
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return a == b


class MessagesView(Sequence[Message]):
    """
    Read-only view over the messages of a ChatHistory.

    Items are copies, so changing a payload read through the view never
    changes the history.

    The view is fixed at the length the history had when it was taken. Later
    appends are not visible through it, and clear() or truncate() on the
    history leave it untouched. Iterating is restartable.
    """

    def __init__(self, messages: list[Message], length: int):
        self._messages = messages
        self._length = length

    def __len__(self) -> int:
        return self._length

    @overload
    def __getitem__(self, key: int) -> Message: ...

    @overload
    def __getitem__(self, key: slice) -> tuple[Message, ...]: ...

    def __getitem__(self, key):
        if isinstance(key, slice):
            return tuple(_copy(self._messages[i]) for i in range(*key.indices(self._length)))
        if key < 0:
            key += self._length
        if not 0 <= key < self._length:
            raise IndexError("message index out of range")
        return _copy(self._messages[key])

    def __iter__(self) -> Iterator[Message]:
        for i in range(self._length):
            yield _copy(self._messages[i])

    def __repr__(self) -> str:
        return f"MessagesView({self._length} messages)"


class ChatHistory:
    """
    An ordered log of chat messages that keeps tool calls linked.

    Every tool result must answer an earlier tool call request that is still
    open. The history tracks open call ids as messages arrive, so each append
    only looks at the new message's parts. Appends are all-or-nothing: a
    rejected message leaves the history exactly as it was.

    Appended messages are re-validated and deep-copied, and every read hands
    out copies; the history owns its state and never inspects message metadata.

    Two histories are equal when their messages match field by field with
    matching types, so a payload of 1 differs from 1.0 or True.

    Example:
        >>> history = ChatHistory()
        >>> history.user("Make me a special poem")
        0
        >>> history.assistant(tool_calls=[ToolCallRequestPart(call_id="c1", tool_name="CreateSpecialPoem")])
        1
        >>> history.tool("c1", "ABCDE")
        2
    """

    def __init__(self, system_message: str | None = None):
        self._messages: list[Message] = []
        # call_id -> request, in request order
        self._open_calls: dict[str, ToolCallRequestPart] = {}

        if system_message is not None:
            self.system(system_message)

    @classmethod
    def from_messages(cls, messages: Iterable[Message]) -> "ChatHistory":
        """
        Build a history from existing messages, validating linkage as they are added.

        Raises:
            DanglingToolCall: If a tool result has no open request before it
        """
        history = cls()
        history.extend(messages)
        return history

    def add_message(
        self,
        role: Role | str,
        content_parts: Iterable[ContentPart | dict[str, Any]],
        author_name: str | None = None,
        metadata: dict[str, JsonValue] | None = None,
        model_id: str | None = None,
    ) -> int:
        """
        Append a message and return its index.

        Args:
            role: Message role
            content_parts: Text, tool call and tool result parts (models or dicts with a "type" key)
            author_name: Optional author label
            metadata: Optional opaque metadata
            model_id: Optional id of the model that produced the message

        Returns:
            Index of the new message

        Raises:
            InvalidMessageShape: If the role and parts don't fit together
            DanglingToolCall: If a tool result has no open request
        """
        try:
            message = Message(
                role=role,
                content_parts=tuple(content_parts),
                author_name=author_name,
                model_id=model_id,
                metadata=metadata,
            )
        except InvalidMessageShape as e:
            logger.warning(f"Rejected message at index {len(self._messages)}: {e}")
            raise
        return self._commit([message])

    def append(self, message: Message) -> int:
        """
        Append a prebuilt message and return its index.

        The message is rebuilt through the shape checks, so a value made with
        Message.model_construct() can't bypass them.
        """
        return self._commit([message])

    def extend(self, messages: Iterable[Message]) -> int:
        """
        Append several messages at once.

        Either all messages are appended or none are.

        Returns:
            Index of the first appended message
        """
        return self._commit(list(messages))

    def system(self, content: str, author_name: str | None = None) -> int:
        """Add a system message."""
        return self.add_message(Role.SYSTEM, [{"type": "text", "text": content}], author_name=author_name)

    def user(self, content: str, author_name: str | None = None) -> int:
        """Add a user message."""
        return self.add_message(Role.USER, [{"type": "text", "text": content}], author_name=author_name)

    def assistant(
        self,
        content: str | None = None,
        tool_calls: Iterable[ToolCallRequestPart | dict[str, Any]] | None = None,
        author_name: str | None = None,
        model_id: str | None = None,
    ) -> int:
        """
        Add an assistant message with optional text and tool call requests.

        Tool calls given as dicts don't need a "type" key.
        """
        parts: list[ContentPart | dict[str, Any]] = []
        if content:
            parts.append({"type": "text", "text": content})
        for call in tool_calls or []:
            parts.append({"type": "tool_call", **call} if isinstance(call, dict) else call)
        return self.add_message(Role.ASSISTANT, parts, author_name=author_name, model_id=model_id)

    def tool(self, call_id: str, result: JsonValue, author_name: str | None = None) -> int:
        """Add a tool message carrying the result of an open tool call."""
        return self.add_message(
            Role.TOOL,
            [{"type": "tool_result", "call_id": call_id, "result": result}],
            author_name=author_name,
        )

    def messages(self) -> MessagesView:
        """Return a read-only view of the messages in insertion order."""
        return MessagesView(self._messages, len(self._messages))

    def count(self) -> int:
        return len(self._messages)

    def clear(self):
        """Remove all messages. Views taken earlier keep their messages."""
        logger.debug(f"Clearing history with {len(self._messages)} messages")
        self._messages = []
        self._open_calls = {}

    def truncate(self, length: int):
        """
        Keep only the first `length` messages.

        A prefix of a valid history is valid, so this never breaks linkage.
        Open tool calls are recomputed from the kept messages.
        """
        if length < 0:
            raise ValueError(f"length must be non-negative, got {length}")
        if length >= len(self._messages):
            return

        kept = self._messages[:length]
        open_calls: dict[str, ToolCallRequestPart] = {}
        for message in kept:
            for part in message.content_parts:
                if isinstance(part, ToolCallRequestPart):
                    open_calls[part.call_id] = part
                elif isinstance(part, ToolCallResultPart):
                    open_calls.pop(part.call_id, None)

        logger.debug(f"Truncating history from {len(self._messages)} to {length} messages")
        self._messages = kept
        self._open_calls = open_calls

    @property
    def pending_tool_calls(self) -> tuple[ToolCallRequestPart, ...]:
        """Tool call requests that are still waiting for a result, in request order."""
        return tuple(request.model_copy(deep=True) for request in self._open_calls.values())

    @property
    def has_pending_tool_calls(self) -> bool:
        return bool(self._open_calls)

    def _commit(self, messages: list[Message]) -> int:
        start = len(self._messages)
        owned: list[Message] = []
        for offset, message in enumerate(messages):
            # rebuilt through the shape gate, which also detaches it from the caller
            try:
                owned.append(Message(**copy.deepcopy(message.model_dump())))
            except InvalidMessageShape as e:
                logger.warning(f"Rejected message at index {start + offset}: {e}")
                raise

        # call_id -> request (opened) or None (resolved), applied only once every message passes
        changes: dict[str, ToolCallRequestPart | None] = {}
        for offset, message in enumerate(owned):
            try:
                self._link(message, changes)
            except DanglingToolCall as e:
                e.index = start + offset
                logger.warning(f"Rejected message at index {e.index}: {e}")
                raise

        self._messages.extend(owned)
        for call_id, request in changes.items():
            self._open_calls.pop(call_id, None)
            if request is not None:
                self._open_calls[call_id] = request

        for offset, message in enumerate(owned):
            logger.debug(f"Appended {message.role.value} message at index {start + offset}")
        return start

    def _link(self, message: Message, changes: dict[str, ToolCallRequestPart | None]):
        def is_open(call_id: str) -> bool:
            if call_id in changes:
                return changes[call_id] is not None
            return call_id in self._open_calls

        for part in message.content_parts:
            if isinstance(part, ToolCallRequestPart):
                if is_open(part.call_id):
                    raise DanglingToolCall(
                        f"Tool call {part.call_id!r} is already open and waiting for its result",
                        call_id=part.call_id,
                        index=-1,
                    )
                changes.pop(part.call_id, None)
                changes[part.call_id] = part
            elif isinstance(part, ToolCallResultPart):
                if not is_open(part.call_id):
                    raise DanglingToolCall(
                        f"Tool result {part.call_id!r} has no open tool call request",
                        call_id=part.call_id,
                        index=-1,
                    )
                changes.pop(part.call_id, None)
                changes[part.call_id] = None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages())

    def __getitem__(self, key):
        if isinstance(key, slice):
            return [_copy(message) for message in self._messages[key]]
        return _copy(self._messages[key])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChatHistory):
            return NotImplemented
        if len(self._messages) != len(other._messages):
            return False
        return all(_same(a.model_dump(), b.model_dump()) for a, b in zip(self._messages, other._messages))

    def __repr__(self) -> str:
        return f"ChatHistory({len(self._messages)} messages, {len(self._open_calls)} pending tool calls)"


__all__ = ["ChatHistory", "MessagesView"]
