"""Content parts carried by a chat message."""

import math
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator


def check_text(value: str) -> str:
    """Reject strings that can't be written as UTF-8 (lone surrogates)."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"string is not valid UTF-8 text: {e.reason} at position {e.start}") from e
    return value


def check_portable(value: JsonValue) -> JsonValue:
    """Reject NaN, infinities and non-UTF-8 strings anywhere inside a JSON value."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"non-finite number {value!r} has no portable encoding")
    if isinstance(value, str):
        check_text(value)
    elif isinstance(value, list):
        for item in value:
            check_portable(item)
    elif isinstance(value, dict):
        for key, item in value.items():
            check_text(key)
            check_portable(item)
    return value


class TextPart(BaseModel):
    """Plain text segment of a message."""

    type: Literal["text"] = "text"
    text: str = Field(..., description="Text content")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("text")
    @classmethod
    def _utf8_text(cls, v: str) -> str:
        return check_text(v)


class ToolCallRequestPart(BaseModel):
    """
    A request by the assistant to invoke a tool.

    Attributes:
        call_id: Correlation id linking this request to its result
        tool_name: Name of the tool to invoke
        arguments: Arguments for the tool, any JSON value
    """

    type: Literal["tool_call"] = "tool_call"
    call_id: str = Field(..., min_length=1, description="Correlation id for the tool call")
    tool_name: str = Field(..., min_length=1, description="Name of the tool to invoke")
    arguments: JsonValue = Field(default_factory=dict, description="Tool arguments")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("call_id", "tool_name")
    @classmethod
    def _utf8_names(cls, v: str) -> str:
        return check_text(v)

    @field_validator("arguments")
    @classmethod
    def _portable_arguments(cls, v: JsonValue) -> JsonValue:
        return check_portable(v)


class ToolCallResultPart(BaseModel):
    """
    The result of a tool invocation, linked to its request by call_id.

    Attributes:
        call_id: Id of the request this result resolves
        result: Tool output, any JSON value
    """

    type: Literal["tool_result"] = "tool_result"
    call_id: str = Field(..., min_length=1, description="Id of the resolved tool call")
    result: JsonValue = Field(None, description="Tool output")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("call_id")
    @classmethod
    def _utf8_call_id(cls, v: str) -> str:
        return check_text(v)

    @field_validator("result")
    @classmethod
    def _portable_result(cls, v: JsonValue) -> JsonValue:
        return check_portable(v)


ContentPart = Annotated[
    Union[TextPart, ToolCallRequestPart, ToolCallResultPart],
    Field(discriminator="type"),
]


__all__ = ["TextPart", "ToolCallRequestPart", "ToolCallResultPart", "ContentPart", "check_text", "check_portable"]
