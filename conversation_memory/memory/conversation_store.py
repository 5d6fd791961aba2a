"""Conversation context store backed by Redis.

Conversations are stored as one JSON value per id with a sliding TTL.
Each queue type keeps its own "last active conversation" pointer so that
independent request channels never overwrite each other's active conversation.

When Redis is unreachable every operation degrades: reads return empty
results, writes are skipped and id resolution hands out fresh, unpersisted ids.
"""

import asyncio
import inspect
import logging
import uuid
from typing import Awaitable, Callable, List, Literal, Optional, Union

from pydantic import ValidationError

from ..infrastructure import AsyncRedisBackend, BackendUnavailableError
from ..schemas import ConversationContext, ConversationMessage, QueueType
from ..schemas.base import utc_now
from .context import SUMMARY_MARKER, render_context

logger = logging.getLogger(__name__)

SummarizeFn = Callable[[List[ConversationMessage]], Union[str, Awaitable[str]]]

# Messages kept verbatim after the summary
RECENT_MESSAGES_KEPT = 3


class ConversationStore:
    """Stores conversation history for the coding agent.

    Handles:
    - Conversation id resolution (explicit id, or per-queue last active id)
    - Appending turns, with review-agent turns dropped unless debug is on
    - Summarization that keeps the full raw history
    - Rendering history into the prompt context string
    """

    render_context = staticmethod(render_context)

    def __init__(
        self,
        backend: AsyncRedisBackend,
        ttl: int = 3600,
        key_prefix: str = "cursor",
        debug: bool = False,
    ) -> None:
        """Initialize conversation store.

        Args:
            backend: Shared Redis backend
            ttl: Sliding expiry for conversation and pointer keys, in seconds
            key_prefix: Namespace for all keys written by this store
            debug: Persist review-agent turns as well
        """
        self.backend = backend
        self.ttl = ttl
        self.key_prefix = key_prefix
        self.debug = debug

    def _conversation_key(self, conversation_id: str) -> str:
        return f"{self.key_prefix}:conversation:{conversation_id}"

    def _last_conversation_key(self, queue_type: QueueType) -> str:
        return f"{self.key_prefix}:{QueueType(queue_type).value}:last_conversation_id"

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    async def _read_key(self, key: str) -> Optional[ConversationContext]:
        """Read and parse a stored context. Unparseable values count as missing."""
        raw = await self.backend.get(key)
        if raw is None:
            return None
        try:
            return ConversationContext.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Failed to parse conversation at {key}: {e}")
            return None

    async def _load(self, conversation_id: str) -> ConversationContext:
        """Read a context, creating an empty one if it does not exist.

        Lazy creation never touches any queue pointer.
        """
        context = await self._read_key(self._conversation_key(conversation_id))
        if context is None:
            context = ConversationContext(conversation_id=conversation_id)
            await self._save(context)
            logger.info(f"Initialized conversation {conversation_id}")
        return context

    async def _save(self, context: ConversationContext) -> None:
        key = self._conversation_key(context.conversation_id)
        await self.backend.set(key, context.to_json(), self.ttl)
        logger.debug(
            f"Saved conversation {context.conversation_id} "
            f"({len(context.messages)} messages, ttl={self.ttl}s)"
        )

    async def _touch(self, conversation_id: str) -> ConversationContext:
        context = await self._load(conversation_id)
        context.last_accessed_at = utc_now()
        await self._save(context)
        return context

    async def _initialize(self, conversation_id: str, queue_type: QueueType) -> None:
        await self._save(ConversationContext(conversation_id=conversation_id))
        await self.backend.set(self._last_conversation_key(queue_type), conversation_id, self.ttl)
        logger.info(f"Created new conversation {conversation_id} (queue={QueueType(queue_type).value})")

    async def health_check(self) -> bool:
        """Ping Redis and update the availability flag."""
        return await self.backend.health_check()

    async def resolve_conversation_id(
        self,
        conversation_id: Optional[str] = None,
        queue_type: QueueType = QueueType.DEFAULT,
    ) -> str:
        """Get or create the conversation id for a request.

        An explicit id is returned unchanged; only its last-accessed time is
        refreshed and the queue pointer is left alone. Without an id, the
        queue's last active conversation is reused, or a new one is created
        and becomes the queue's pointer.

        Args:
            conversation_id: Optional explicit conversation ID
            queue_type: Queue whose pointer is used for implicit resolution

        Returns:
            Conversation ID (a fresh unpersisted one if Redis is down)
        """
        if not self.backend.is_available():
            return conversation_id or self._new_id()

        try:
            if conversation_id:
                await self._touch(conversation_id)
                return conversation_id

            pointer_key = self._last_conversation_key(queue_type)
            last_id = await self.backend.get(pointer_key)
            if last_id:
                await self.backend.expire(pointer_key, self.ttl)
                await self._touch(last_id)
                return last_id

            new_id = self._new_id()
            await self._initialize(new_id, queue_type)
            return new_id
        except BackendUnavailableError as e:
            logger.warning(f"Redis operation failed, using new conversation ID: {e}")
            return conversation_id or self._new_id()

    async def create_conversation(
        self,
        conversation_id: str,
        queue_type: QueueType = QueueType.DEFAULT,
    ) -> None:
        """Start an empty conversation and make it the queue's active one.

        Overwrites any existing context stored under the same id.
        """
        if not self.backend.is_available():
            return

        try:
            await self._initialize(conversation_id, queue_type)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to create conversation {conversation_id}: {e}")

    async def force_new_conversation(self, queue_type: QueueType = QueueType.DEFAULT) -> str:
        """Create a new conversation and point the queue at it.

        Returns:
            The new conversation ID (returned even if it could not be stored)
        """
        new_id = self._new_id()
        if not self.backend.is_available():
            return new_id

        try:
            await self._initialize(new_id, queue_type)
            logger.info(f"Forced new conversation {new_id}")
        except BackendUnavailableError as e:
            logger.warning(f"Failed to force new conversation, returning new ID anyway: {e}")
        return new_id

    async def append_message(
        self,
        conversation_id: str,
        role: Literal["user", "assistant"],
        content: str,
        is_review_turn: bool = False,
    ) -> None:
        """Append one turn to a conversation.

        Only the message itself is stored; the prompt context is rebuilt from
        the stored messages when needed. Review-agent turns are skipped unless
        debug is enabled.

        Args:
            conversation_id: Conversation ID
            role: "user" or "assistant"
            content: Message text
            is_review_turn: Message belongs to the review-agent exchange
        """
        if is_review_turn and not self.debug:
            return

        if not self.backend.is_available():
            return

        try:
            context = await self._load(conversation_id)
            message = ConversationMessage(role=role, content=content)
            context.messages.append(message)
            # Keep the summarized view current so new turns reach the prompt
            if context.summarized_messages is not None:
                context.summarized_messages.append(message)
            context.last_accessed_at = utc_now()
            await self._save(context)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to add message to conversation {conversation_id}: {e}")

    async def get_context(self, conversation_id: str) -> List[ConversationMessage]:
        """Return the summarized messages if present, otherwise the raw ones."""
        if not self.backend.is_available():
            return []

        try:
            context = await self._touch(conversation_id)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to get conversation context for {conversation_id}: {e}")
            return []
        return context.effective_messages

    async def get_raw_messages(self, conversation_id: str) -> List[ConversationMessage]:
        """Return the full raw message history, ignoring any summary."""
        if not self.backend.is_available():
            return []

        try:
            context = await self._touch(conversation_id)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to get raw conversation for {conversation_id}: {e}")
            return []
        return context.messages

    async def get_context_string(self, conversation_id: str) -> str:
        """Return the rendered prompt context for a conversation."""
        return render_context(await self.get_context(conversation_id))

    async def summarize(self, conversation_id: str, summarize_fn: SummarizeFn) -> None:
        """Summarize a conversation whose context no longer fits the agent window.

        The summary replaces summarized_messages together with the last three
        messages of the current effective history. Raw messages are kept.
        Exceptions raised by summarize_fn propagate to the caller.

        Args:
            conversation_id: Conversation ID
            summarize_fn: Sync or async callable turning messages into summary text
        """
        if not self.backend.is_available():
            logger.warning(f"Cannot summarize conversation {conversation_id}, Redis not available")
            return

        try:
            context = await self._load(conversation_id)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to load conversation {conversation_id} for summarization: {e}")
            return

        to_summarize = list(context.effective_messages)
        summary = summarize_fn(to_summarize)
        if inspect.isawaitable(summary):
            summary = await summary

        summary_message = ConversationMessage(role="assistant", content=f"{SUMMARY_MARKER} {summary}")
        context.summarized_messages = [summary_message, *to_summarize[-RECENT_MESSAGES_KEPT:]]
        context.last_accessed_at = utc_now()

        try:
            await self._save(context)
        except BackendUnavailableError as e:
            logger.warning(f"Failed to save summary for conversation {conversation_id}: {e}")
            return

        logger.info(
            f"Conversation {conversation_id} summarized: "
            f"{len(to_summarize)} -> {len(context.summarized_messages)} messages"
        )

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationContext]:
        """Get a stored conversation without creating it.

        Returns:
            The conversation, or None if missing or Redis is down
        """
        if not self.backend.is_available():
            return None

        try:
            context = await self._read_key(self._conversation_key(conversation_id))
            if context is None:
                return None
            context.last_accessed_at = utc_now()
            await self._save(context)
            return context
        except BackendUnavailableError as e:
            logger.warning(f"Failed to get conversation {conversation_id}: {e}")
            return None

    async def list_all(self) -> List[ConversationContext]:
        """List all stored conversations, most recently accessed first."""
        if not self.backend.is_available():
            logger.warning("Cannot list conversations, Redis not available")
            return []

        pattern = self._conversation_key("*")
        try:
            keys = await self.backend.scan_keys(pattern)
            if not keys:
                logger.info(f"No conversations found in Redis ({pattern})")
                return []
            results = await asyncio.gather(*(self._read_key(key) for key in keys))
        except BackendUnavailableError as e:
            logger.warning(f"Failed to list conversations: {e}")
            return []

        conversations = [c for c in results if c is not None]
        logger.info(f"Listed {len(conversations)} conversations ({len(keys)} keys)")
        return sorted(conversations, key=lambda c: c.last_accessed_at, reverse=True)
