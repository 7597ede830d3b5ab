"""Chat data models.

Created: 2026-10-07

- ChatMessage: one immutable turn (user or assistant), optionally with an image
- Conversation: ordered messages plus a derived title

Design notes:
- Timestamps are ISO 8601 strings for JSON serialization
- Images are stored as base64 in to_dict()
"""

from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 50


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Get current UTC time as ISO 8601 string."""
    return datetime.now(UTC).isoformat()


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """
    A single chat turn.

    Attributes:
        role: Who wrote it
        content: Message text
        image_data: Raw image bytes attached by the user, if any
        image_media_type: MIME type of image_data
        is_error: True for assistant messages standing in for a failed reply
        id: Unique identifier
        created_at: When the message was created
    """

    role: MessageRole
    content: str
    image_data: bytes | None = None
    image_media_type: str = "image/jpeg"
    is_error: bool = False
    id: str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def user(
        cls, content: str, image_data: bytes | None = None, image_media_type: str = "image/jpeg"
    ) -> ChatMessage:
        return cls(
            role=MessageRole.USER,
            content=content,
            image_data=image_data,
            image_media_type=image_media_type,
        )

    @classmethod
    def assistant(cls, content: str, *, is_error: bool = False) -> ChatMessage:
        return cls(role=MessageRole.ASSISTANT, content=content, is_error=is_error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "image_data": (
                base64.b64encode(self.image_data).decode("ascii") if self.image_data else None
            ),
            "image_media_type": self.image_media_type,
            "is_error": self.is_error,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        """Create from dictionary."""
        image = data.get("image_data")
        return cls(
            id=data.get("id", generate_id()),
            role=MessageRole(data.get("role", "user")),
            content=data.get("content", ""),
            image_data=base64.b64decode(image) if image else None,
            image_media_type=data.get("image_media_type", "image/jpeg"),
            is_error=data.get("is_error", False),
            created_at=data.get("created_at", now_iso()),
        )


@dataclass
class Conversation:
    """
    An ordered chat thread.

    Messages are only ever appended; a conversation is removed as a whole.
    The title is derived from the first message once the conversation holds
    exactly two messages.
    """

    id: str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)
    title: str = DEFAULT_TITLE
    messages: list[ChatMessage] = field(default_factory=list)

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)
        if len(self.messages) == 2 and self.title == DEFAULT_TITLE:
            first = self.messages[0].content[:TITLE_MAX_LENGTH]
            if first:
                self.title = first

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "created_at": self.created_at,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        """Create from dictionary."""
        return cls(
            id=data.get("id", generate_id()),
            created_at=data.get("created_at", now_iso()),
            title=data.get("title", DEFAULT_TITLE),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
        )
