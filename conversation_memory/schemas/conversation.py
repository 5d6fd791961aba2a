"""Pydantic schemas for the conversation context store and its API endpoints."""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel, utc_now


class QueueType(str, Enum):
    """Request channel owning an independent "last active conversation" pointer."""

    DEFAULT = "default"
    TELEGRAM = "telegram"


class ConversationMessage(CamelModel):
    """Schema for a single conversation turn."""

    role: Literal["user", "assistant"] = Field(..., description="Message role: 'user' or 'assistant'")
    content: str = Field(..., description="Message content")
    timestamp: str = Field(default_factory=utc_now, description="ISO8601 timestamp")


class ConversationContext(CamelModel):
    """Stored conversation history.

    summarized_messages, when present, replaces messages for everything handed
    to the agent. messages itself is never truncated.
    """

    conversation_id: str = Field(..., description="Conversation ID")
    messages: List[ConversationMessage] = Field(default_factory=list, description="Full message history")
    summarized_messages: Optional[List[ConversationMessage]] = Field(
        None, description="Summary plus most recent messages, used for prompts"
    )
    created_at: str = Field(default_factory=utc_now, description="ISO8601 creation timestamp")
    last_accessed_at: str = Field(default_factory=utc_now, description="ISO8601 last access timestamp")

    @property
    def effective_messages(self) -> List[ConversationMessage]:
        """Messages used to build agent-facing context."""
        if self.summarized_messages is not None:
            return self.summarized_messages
        return self.messages


class NewConversationRequest(CamelModel):
    """Schema for forcing a fresh conversation."""

    queue_type: QueueType = Field(QueueType.DEFAULT, description="Queue whose pointer is reset")


class NewConversationResponse(CamelModel):
    """Schema for the force-new-conversation response."""

    success: bool = True
    conversation_id: str = Field(..., description="New conversation ID")
    message: str = "New conversation created"
