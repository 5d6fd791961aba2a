"""FastAPI application for the conversation memory service.

This module provides the main FastAPI application with:
- Lifespan management for the shared Redis connection
- Conversation and agent conversation route registration
- A health endpoint that pings Redis
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import get_settings
from .infrastructure import AsyncRedisBackend
from .memory import AgentConversationStore, ConversationStore
from .routes import agent_conversations, conversations

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_stores(app: FastAPI, backend: AsyncRedisBackend) -> None:
    """Create both stores on one shared backend and attach them to app state."""
    app_settings = get_settings()
    app.state.backend = backend
    app.state.conversation_store = ConversationStore(
        backend,
        ttl=app_settings.redis_ttl_seconds,
        key_prefix=app_settings.conversation_key_prefix,
        debug=app_settings.debug,
    )
    app.state.agent_conversation_store = AgentConversationStore(
        backend,
        ttl=app_settings.redis_ttl_seconds,
        key_prefix=app_settings.agent_conversation_key_prefix,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan for the Redis connection.

    A failed connection does not stop startup; the stores run degraded
    until a health check succeeds.
    """
    app_settings = get_settings()

    backend = AsyncRedisBackend()
    connected = await backend.connect(
        redis_url=app_settings.redis_url,
        max_attempts=app_settings.redis_connect_max_attempts,
        socket_timeout=app_settings.redis_socket_timeout,
    )
    if connected:
        logger.info("Initialized with Redis conversation storage")
    else:
        logger.warning("Starting without Redis, conversation context will not persist")

    build_stores(app, backend)

    yield

    # Cleanup on shutdown
    logger.info("Shutting down application")
    await backend.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Conversation Memory API",
        description="Redis-backed conversation memory for the coding agent",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(conversations.router, tags=["conversations"])
    app.include_router(agent_conversations.router, tags=["agent-conversations"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint; also re-checks Redis."""
        redis_ok = await app.state.backend.health_check()
        return {"status": "healthy", "redis": redis_ok}

    return app


# Create the app instance
app = create_app()
