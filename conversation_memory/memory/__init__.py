"""Conversation memory for the coding agent.

Main components:
- ConversationStore: coding-agent context with per-queue active conversations
  and summarization
- AgentConversationStore: agent conversations with provenance and status
- render_context / is_context_window_error: prompt helpers
"""

from .agent_store import AgentConversationNotFoundError, AgentConversationStore
from .context import is_context_window_error, render_context
from .conversation_store import ConversationStore

__all__ = [
    "ConversationStore",
    "AgentConversationStore",
    "AgentConversationNotFoundError",
    "render_context",
    "is_context_window_error",
]
