"""Conversation context API routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from ..dependencies import ConversationStoreDep
from ..schemas import ConversationContext, NewConversationRequest, NewConversationResponse, QueueType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/cursor/conversation/new", response_model=NewConversationResponse)
async def force_new_conversation(
    store: ConversationStoreDep,
    body: Optional[NewConversationRequest] = None,
) -> NewConversationResponse:
    """Force a fresh conversation for subsequent requests on a queue.

    Returns:
        The new conversation ID
    """
    queue_type = body.queue_type if body else QueueType.DEFAULT
    logger.info(f"Force new conversation request received (queue={queue_type.value})")
    conversation_id = await store.force_new_conversation(queue_type)
    return NewConversationResponse(conversation_id=conversation_id)


@router.get("/conversations/api/list", response_model=List[ConversationContext])
async def list_conversations(store: ConversationStoreDep) -> List[ConversationContext]:
    """List all stored conversations, most recently accessed first."""
    return await store.list_all()


@router.get("/conversations/api/{conversation_id}", response_model=ConversationContext)
async def get_conversation(
    conversation_id: str,
    store: ConversationStoreDep,
) -> ConversationContext:
    """Get a specific conversation with all messages.

    Raises:
        HTTPException: 404 if conversation not found
    """
    conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation
