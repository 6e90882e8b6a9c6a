"""
Contract between a chat history and a completion engine.

The engine itself (an LLM provider client) lives outside this library. It
receives the history, produces the next assistant message, and the caller
appends that message back through the history's validation.
"""

import logging
from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .history import ChatHistory
from .models import Message

logger = logging.getLogger(__name__)


class ToolCallBehavior(str, Enum):
    """How the engine should treat tools."""

    NONE = "none"
    ENABLE = "enable"  # return tool call requests to the caller
    AUTO_INVOKE = "auto_invoke"  # engine runs the tools itself


class ExecutionSettings(BaseModel):
    """
    Settings handed to a completion engine.

    Attributes:
        model_id: Model to use, None for the engine's default
        temperature: Sampling temperature (default: 0.7)
        max_tokens: Maximum tokens in the reply, None for no limit
        tool_call_behavior: How tools are exposed (default: NONE)
    """

    model_id: str | None = Field(default=None, description="Model to use")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int | None = Field(default=None, ge=1, description="Maximum tokens in the reply")
    tool_call_behavior: ToolCallBehavior = Field(default=ToolCallBehavior.NONE, description="Tool handling")

    model_config = ConfigDict(protected_namespaces=())


@runtime_checkable
class CompletionEngine(Protocol):
    """Anything that can produce the next message of a conversation."""

    async def get_chat_message(self, history: ChatHistory, settings: ExecutionSettings) -> Message: ...


async def continue_conversation(
    engine: CompletionEngine, history: ChatHistory, settings: ExecutionSettings | None = None
) -> Message:
    """
    Ask the engine for the next message and append it to the history.

    The reply goes through ChatHistory.append, so a reply that breaks message
    shape or tool call linkage is rejected and the history is left unchanged.

    Returns:
        The appended message as stored in the history
    """
    settings = settings or ExecutionSettings()
    logger.info(f"Continuing conversation with {len(history)} messages")
    reply = await engine.get_chat_message(history, settings)
    index = history.append(reply)
    if reply.tool_calls:
        logger.info(f"Engine requested {len(reply.tool_calls)} tool calls")
    return history[index]


__all__ = ["ToolCallBehavior", "ExecutionSettings", "CompletionEngine", "continue_conversation"]
