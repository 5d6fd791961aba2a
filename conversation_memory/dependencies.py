"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Request

from .memory import AgentConversationStore, ConversationStore


async def get_conversation_store(request: Request) -> ConversationStore:
    """Get the ConversationStore from app state."""
    return request.app.state.conversation_store


async def get_agent_conversation_store(request: Request) -> AgentConversationStore:
    """Get the AgentConversationStore from app state."""
    return request.app.state.agent_conversation_store


# Type aliases for dependency injection
ConversationStoreDep = Annotated[ConversationStore, Depends(get_conversation_store)]
AgentConversationStoreDep = Annotated[AgentConversationStore, Depends(get_agent_conversation_store)]
