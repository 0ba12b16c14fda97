"""Shared type definitions for the chatflow decision pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence


class MessageRole(str, Enum):
    """Roles for conversation messages."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """A single conversation message.

    Messages are immutable; compaction and summarization always build
    new messages instead of editing existing ones.
    """

    role: MessageRole
    content: str
    timestamp: Optional[datetime] = None
    important: bool = False
    has_code: bool = False
    is_question: bool = False

    @classmethod
    def user(cls, content: str, **kwargs: Any) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content, **kwargs)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> "Message":
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=content, **kwargs)

    @classmethod
    def system(cls, content: str, **kwargs: Any) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "important": self.important,
            "has_code": self.has_code,
            "is_question": self.is_question,
        }


# An ordered conversation history owned by the caller.
ConversationWindow = Sequence[Message]
