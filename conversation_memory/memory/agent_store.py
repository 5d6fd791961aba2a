"""Agent conversation store backed by Redis.

Agent conversations are kept apart from the coding-agent context store. They
carry richer per-message provenance, an opaque status, and are enumerated
through an explicit index set instead of key scans. There is no summarization.
"""

import json
import logging
import random
import string
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..infrastructure import AsyncRedisBackend, BackendUnavailableError
from ..schemas import AgentConversation, AgentConversationStatus, AgentMessage
from ..schemas.base import utc_now

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """Build an id like "agent-1718000000000-k3j9x0a1b"."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class AgentConversationNotFoundError(LookupError):
    """Raised when writing to an agent conversation that does not exist."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Agent conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class AgentConversationStore:
    """Stores agent conversations with an index set for listing."""

    def __init__(
        self,
        backend: AsyncRedisBackend,
        ttl: int = 3600,
        key_prefix: str = "agent",
    ) -> None:
        """Initialize agent conversation store.

        Args:
            backend: Shared Redis backend
            ttl: Sliding expiry for conversation and index keys, in seconds
            key_prefix: Namespace for all keys written by this store
        """
        self.backend = backend
        self.ttl = ttl
        self.key_prefix = key_prefix

    @property
    def list_key(self) -> str:
        return f"{self.key_prefix}:conversations:list"

    def _conversation_key(self, conversation_id: str) -> str:
        return f"{self.key_prefix}:conversation:{conversation_id}"

    async def _read(self, conversation_id: str) -> Optional[AgentConversation]:
        raw = await self.backend.get(self._conversation_key(conversation_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            # Older records were written without their own id
            data.setdefault("conversationId", conversation_id)
            return AgentConversation.model_validate(data)
        except (json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"Failed to parse agent conversation {conversation_id}: {e}")
            return None

    async def _save(self, conversation: AgentConversation) -> None:
        key = self._conversation_key(conversation.conversation_id)
        await self.backend.set(key, conversation.to_json(), self.ttl)

    async def create_conversation(
        self,
        agent_id: Optional[str] = None,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AgentConversation:
        """Create and index a new agent conversation.

        Args:
            agent_id: Agent that owns the conversation
            title: Optional title (defaults to one derived from the id)
            metadata: Free-form metadata

        Returns:
            The new conversation (not persisted if Redis is down)
        """
        conversation_id = generate_id("agent")
        conversation = AgentConversation(
            conversation_id=conversation_id,
            title=title or f"Agent Conversation {conversation_id[:8]}",
            agent_id=agent_id,
            metadata=metadata,
        )

        if not self.backend.is_available():
            logger.warning(f"Agent conversation {conversation_id} not persisted, Redis not available")
            return conversation

        try:
            await self._save(conversation)
            await self.backend.add_to_set(self.list_key, conversation_id, self.ttl)
            logger.info(f"Created agent conversation {conversation_id} (agent={agent_id})")
        except BackendUnavailableError as e:
            logger.warning(f"Failed to save agent conversation {conversation_id}: {e}")
        return conversation

    async def get_conversation(self, conversation_id: str) -> Optional[AgentConversation]:
        """Get a conversation by ID and refresh its last-accessed time.

        Returns:
            The conversation, or None if missing, unreadable or Redis is down
        """
        if not self.backend.is_available():
            return None

        try:
            conversation = await self._read(conversation_id)
            if conversation is None:
                return None
            conversation.last_accessed_at = utc_now()
            await self._save(conversation)
            await self.backend.add_to_set(self.list_key, conversation_id, self.ttl)
            return conversation
        except BackendUnavailableError as e:
            logger.warning(f"Failed to get agent conversation {conversation_id}: {e}")
            return None

    async def list_conversations(self) -> List[AgentConversation]:
        """List all indexed conversations, most recently accessed first.

        Listed conversations and the index get their expiry refreshed without
        touching last_accessed_at, so listing does not reorder the list.
        Index entries whose conversation has expired are pruned.
        """
        if not self.backend.is_available():
            return []

        try:
            ids = await self.backend.set_members(self.list_key)
            conversations = []
            stale = []
            for conversation_id in ids:
                conversation = await self._read(conversation_id)
                if conversation is None:
                    stale.append(conversation_id)
                else:
                    await self.backend.expire(self._conversation_key(conversation_id), self.ttl)
                    conversations.append(conversation)
            if stale:
                await self.backend.remove_from_set(self.list_key, *stale)
                logger.info(f"Pruned {len(stale)} expired agent conversations from index")
            if ids:
                await self.backend.expire(self.list_key, self.ttl)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to list agent conversations: {e}")
            return []

        return sorted(conversations, key=lambda c: c.last_accessed_at, reverse=True)

    async def append_message(self, conversation_id: str, message: AgentMessage) -> AgentMessage:
        """Append a message to an existing conversation.

        Missing timestamp and message_id are generated before storing.

        Args:
            conversation_id: Conversation ID
            message: Message to append

        Returns:
            The stored message with generated fields filled in

        Raises:
            AgentConversationNotFoundError: Conversation does not exist
        """
        message = message.model_copy(
            update={
                "timestamp": message.timestamp or utc_now(),
                "message_id": message.message_id or generate_id("msg"),
            }
        )

        if not self.backend.is_available():
            logger.warning(f"Message for agent conversation {conversation_id} dropped, Redis not available")
            return message

        try:
            conversation = await self._read(conversation_id)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to load agent conversation {conversation_id}: {e}")
            return message

        if conversation is None:
            raise AgentConversationNotFoundError(conversation_id)

        conversation.messages.append(message)
        conversation.last_accessed_at = utc_now()
        try:
            await self._save(conversation)
            await self.backend.add_to_set(self.list_key, conversation_id, self.ttl)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to save message to agent conversation {conversation_id}: {e}")
        return message

    async def update_conversation(self, conversation: AgentConversation) -> None:
        """Persist a caller-modified conversation and keep it indexed."""
        if not self.backend.is_available():
            return

        try:
            await self._save(conversation)
            await self.backend.add_to_set(self.list_key, conversation.conversation_id, self.ttl)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to update agent conversation {conversation.conversation_id}: {e}")

    async def set_status(
        self,
        conversation_id: str,
        status: AgentConversationStatus,
    ) -> Optional[AgentConversation]:
        """Set a conversation's status. Any transition is allowed.

        Returns:
            The updated conversation, or None if Redis is down

        Raises:
            AgentConversationNotFoundError: Conversation does not exist
        """
        if not self.backend.is_available():
            return None

        try:
            conversation = await self._read(conversation_id)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to load agent conversation {conversation_id}: {e}")
            return None

        if conversation is None:
            raise AgentConversationNotFoundError(conversation_id)

        conversation.status = AgentConversationStatus(status)
        conversation.last_accessed_at = utc_now()
        try:
            await self._save(conversation)
            await self.backend.add_to_set(self.list_key, conversation_id, self.ttl)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to save status for agent conversation {conversation_id}: {e}")
        return conversation
