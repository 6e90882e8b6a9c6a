"""
Models package for chathistory.

- content: TextPart, ToolCallRequestPart, ToolCallResultPart and the ContentPart union
- message: Role and Message
"""

from .content import ContentPart, TextPart, ToolCallRequestPart, ToolCallResultPart
from .message import Message, Role

__all__ = [
    "Role",
    "Message",
    "ContentPart",
    "TextPart",
    "ToolCallRequestPart",
    "ToolCallResultPart",
]
