"""Pydantic schemas for agent conversations and their API endpoints."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .base import CamelModel, utc_now

MessageSource = Literal[
    "voice",
    "text",
    "user_input",
    "agent_response",
    "tool_output",
    "system_event",
]


class AgentConversationStatus(str, Enum):
    """Opaque lifecycle label; the store does not enforce transitions."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    FAILED = "failed"


class AgentMessage(CamelModel):
    """Schema for an agent conversation message.

    timestamp and message_id are filled in by the store when omitted.
    """

    role: Literal["user", "assistant", "system", "tool"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    timestamp: Optional[str] = Field(None, description="ISO8601 timestamp")
    source: Optional[MessageSource] = Field(None, description="Channel the message came from")
    message_id: Optional[str] = Field(None, description="Message ID")
    tool_name: Optional[str] = Field(None, description="Invoked tool name")
    tool_args: Optional[Dict[str, Any]] = Field(None, description="Tool arguments (free-form)")
    tool_output: Optional[str] = Field(None, description="Tool output")


class AgentConversation(CamelModel):
    """Schema for a stored agent conversation.

    metadata is an open map; callers attach arbitrary provenance keys.
    """

    conversation_id: str = Field(..., description="Conversation ID")
    messages: List[AgentMessage] = Field(default_factory=list, description="Full message history")
    created_at: str = Field(default_factory=utc_now, description="ISO8601 creation timestamp")
    last_accessed_at: str = Field(default_factory=utc_now, description="ISO8601 last access timestamp")
    agent_id: Optional[str] = Field(None, description="Agent that owns the conversation")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")
    title: Optional[str] = Field(None, description="Conversation title")
    status: AgentConversationStatus = Field(AgentConversationStatus.ACTIVE, description="Conversation status")


class AgentConversationCreate(CamelModel):
    """Schema for creating an agent conversation."""

    agent_id: Optional[str] = Field(None, description="Agent that owns the conversation")
    title: Optional[str] = Field(None, description="Conversation title")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")


class AgentStatusUpdate(CamelModel):
    """Schema for changing an agent conversation's status."""

    status: AgentConversationStatus = Field(..., description="New status")


class AgentMessageResponse(CamelModel):
    """Schema for the add-message response."""

    success: bool = True
    conversation_id: str = Field(..., description="Conversation ID")
    message: AgentMessage = Field(..., description="Stored message with generated fields")


class Pagination(CamelModel):
    """Schema for list pagination metadata."""

    total: int
    limit: int
    offset: int
    has_more: bool


class AgentConversationListResponse(CamelModel):
    """Schema for listing agent conversations."""

    conversations: List[AgentConversation] = Field(default_factory=list)
    pagination: Pagination
