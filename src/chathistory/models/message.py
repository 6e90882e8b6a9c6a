"""Message model for chat histories."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError, field_validator, model_validator

from ..errors import InvalidMessageShape
from .content import ContentPart, TextPart, ToolCallRequestPart, ToolCallResultPart, check_portable, check_text


class Role(str, Enum):
    """Author role of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Message(BaseModel):
    """
    One turn of a conversation.

    Messages are frozen value objects. Construction validates the shape:
    content is non-empty, tool call requests only appear on assistant
    messages and tool results only appear on tool messages. Any violation
    raises InvalidMessageShape.

    Attributes:
        role: Who authored the message
        content_parts: Ordered text / tool call / tool result parts
        author_name: Free-form author label, not interpreted
        model_id: Model that produced the message, if any
        metadata: Opaque mapping, passed through unchanged
    """

    role: Role = Field(..., description="Message role (system, user, assistant, tool)")
    content_parts: tuple[ContentPart, ...] = Field(..., description="Ordered content parts")
    author_name: str | None = Field(None, description="Name of the author")
    model_id: str | None = Field(None, description="Model that produced the message")
    metadata: dict[str, JsonValue] | None = Field(None, description="Opaque metadata")

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    def __init__(self, /, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            details = e.errors(include_url=False)
            first = details[0]
            where = ".".join(str(p) for p in first["loc"]) or "message"
            raise InvalidMessageShape(f"Invalid message ({where}): {first['msg']}", errors=details) from e

    @field_validator("author_name", "model_id")
    @classmethod
    def _utf8_labels(cls, v: str | None) -> str | None:
        return v if v is None else check_text(v)

    @field_validator("metadata")
    @classmethod
    def _portable_metadata(cls, v: dict[str, JsonValue] | None) -> dict[str, JsonValue] | None:
        return v if v is None else check_portable(v)

    @model_validator(mode="after")
    def _check_shape(self) -> "Message":
        if not self.content_parts:
            raise ValueError("a message needs at least one content part")

        requested: set[str] = set()
        for part in self.content_parts:
            if isinstance(part, ToolCallRequestPart):
                if self.role is not Role.ASSISTANT:
                    raise ValueError(f"tool call requests only appear on assistant messages, not {self.role.value}")
                if part.call_id in requested:
                    raise ValueError(f"call id {part.call_id!r} is requested twice in one message")
                requested.add(part.call_id)
            elif isinstance(part, ToolCallResultPart) and self.role is not Role.TOOL:
                raise ValueError(f"tool results only appear on tool messages, not {self.role.value}")
        return self

    @property
    def text(self) -> str:
        """Text parts joined by newlines ("" when there are none)."""
        return "\n".join(p.text for p in self.content_parts if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCallRequestPart]:
        return [p for p in self.content_parts if isinstance(p, ToolCallRequestPart)]

    @property
    def tool_results(self) -> list[ToolCallResultPart]:
        return [p for p in self.content_parts if isinstance(p, ToolCallResultPart)]


__all__ = ["Role", "Message"]
