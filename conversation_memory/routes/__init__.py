"""FastAPI route modules."""

from . import agent_conversations, conversations

__all__ = ["agent_conversations", "conversations"]
