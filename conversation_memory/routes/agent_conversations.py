"""Agent conversation API routes."""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, HTTPException, Query

from ..dependencies import AgentConversationStoreDep
from ..memory import AgentConversationNotFoundError
from ..schemas import (
    AgentConversation,
    AgentConversationCreate,
    AgentConversationListResponse,
    AgentMessage,
    AgentMessageResponse,
    AgentStatusUpdate,
    Pagination,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SortField = Literal["createdAt", "lastAccessedAt", "messageCount"]


def _sort_key(sort_by: SortField):
    if sort_by == "createdAt":
        return lambda c: c.created_at
    if sort_by == "messageCount":
        return lambda c: len(c.messages)
    return lambda c: c.last_accessed_at


@router.post("/api/agent/new", response_model=AgentConversation)
async def create_agent_conversation(
    store: AgentConversationStoreDep,
    body: AgentConversationCreate | None = None,
) -> AgentConversation:
    """Create a new agent conversation."""
    body = body or AgentConversationCreate()
    return await store.create_conversation(
        agent_id=body.agent_id,
        title=body.title,
        metadata=body.metadata,
    )


@router.get("/api/agent/list", response_model=AgentConversationListResponse)
async def list_agent_conversations(
    store: AgentConversationStoreDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "lastAccessedAt",
    sort_order: Annotated[Literal["asc", "desc"], Query(alias="sortOrder")] = "desc",
) -> AgentConversationListResponse:
    """List agent conversations with sorting and pagination."""
    conversations = await store.list_conversations()
    conversations.sort(key=_sort_key(sort_by), reverse=sort_order == "desc")

    total = len(conversations)
    page = conversations[offset:offset + limit]
    return AgentConversationListResponse(
        conversations=page,
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(page) < total,
        ),
    )


@router.get("/api/agent/{conversation_id}", response_model=AgentConversation)
async def get_agent_conversation(
    conversation_id: str,
    store: AgentConversationStoreDep,
) -> AgentConversation:
    """Get a specific agent conversation.

    Raises:
        HTTPException: 404 if conversation not found
    """
    conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.post("/api/agent/{conversation_id}/message", response_model=AgentMessageResponse)
async def add_agent_message(
    conversation_id: str,
    body: AgentMessage,
    store: AgentConversationStoreDep,
) -> AgentMessageResponse:
    """Append a message to an agent conversation.

    Raises:
        HTTPException: 404 if conversation not found
    """
    try:
        message = await store.append_message(conversation_id, body)
    except AgentConversationNotFoundError as e:
        logger.warning(f"Rejected message: {e}")
        raise HTTPException(status_code=404, detail=str(e))
    return AgentMessageResponse(conversation_id=conversation_id, message=message)


@router.patch("/api/agent/{conversation_id}/status", response_model=AgentConversation)
async def update_agent_conversation_status(
    conversation_id: str,
    body: AgentStatusUpdate,
    store: AgentConversationStoreDep,
) -> AgentConversation:
    """Change an agent conversation's status.

    Raises:
        HTTPException: 404 if conversation not found, 503 if storage is down
    """
    try:
        conversation = await store.set_status(conversation_id, body.status)
    except AgentConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if conversation is None:
        raise HTTPException(status_code=503, detail="Conversation storage unavailable")
    return conversation
