"""Pydantic schemas for stored records, API requests and responses."""

from .agent_conversation import (
    AgentConversation,
    AgentConversationCreate,
    AgentConversationListResponse,
    AgentConversationStatus,
    AgentMessage,
    AgentMessageResponse,
    AgentStatusUpdate,
    MessageSource,
    Pagination,
)
from .conversation import (
    ConversationContext,
    ConversationMessage,
    NewConversationRequest,
    NewConversationResponse,
    QueueType,
)

__all__ = [
    # Conversation context schemas
    "QueueType",
    "ConversationMessage",
    "ConversationContext",
    "NewConversationRequest",
    "NewConversationResponse",
    # Agent conversation schemas
    "MessageSource",
    "AgentConversationStatus",
    "AgentMessage",
    "AgentConversation",
    "AgentConversationCreate",
    "AgentStatusUpdate",
    "AgentMessageResponse",
    "Pagination",
    "AgentConversationListResponse",
]
