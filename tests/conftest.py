"""
Pytest configuration for chathistory tests.

Provides shared histories used across the suite.
"""

import pytest

from chathistory import ChatHistory, ToolCallRequestPart


@pytest.fixture
def poem_history() -> ChatHistory:
    """User asks for a poem, assistant calls a tool, tool answers, user says thanks."""
    history = ChatHistory()
    history.user("Make me a special poem")
    history.assistant(tool_calls=[ToolCallRequestPart(call_id="c1", tool_name="CreateSpecialPoem", arguments={})])
    history.tool("c1", "ABCDE")
    history.user("Ok thank you")
    return history


@pytest.fixture
def rich_history() -> ChatHistory:
    """A history exercising every field and payload shape."""
    history = ChatHistory(system_message="You are a helpful assistant.")
    history.add_message(
        "user",
        [{"type": "text", "text": "Weather in Zürich and Tokyo? ☀️"}],
        author_name="alice",
        metadata={"session": {"id": 42, "tags": ["a", "b"]}, "score": 0.5, "flag": True, "none": None},
    )
    history.add_message(
        "assistant",
        [
            {"type": "text", "text": "Checking both."},
            {"type": "tool_call", "call_id": "w1", "tool_name": "weather", "arguments": {"city": "Zürich", "days": 3}},
            {"type": "tool_call", "call_id": "w2", "tool_name": "weather", "arguments": {"city": "Tokyo", "units": [1, 2.5, None]}},
        ],
        model_id="gpt-4.1-mini",
    )
    history.tool("w2", {"temp": 21.0, "conditions": ["clear"], "humid": False})
    history.tool("w1", [{"temp": -3, "snow": True}, None])
    history.assistant("Zürich is cold, Tokyo is clear.", model_id="gpt-4.1-mini")
    return history
