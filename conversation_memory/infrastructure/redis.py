"""Async Redis backend shared by the conversation stores."""

import asyncio
import logging
from typing import List, Optional

import redis.asyncio as redis

from .availability import AvailabilityTracker

logger = logging.getLogger(__name__)


class BackendUnavailableError(RuntimeError):
    """Raised when Redis is unreachable or a Redis command fails."""


class AsyncRedisBackend:
    """Thin async capability over Redis.

    Every command checks the availability flag first and raises
    BackendUnavailableError instead of touching a connection that is known
    to be down. A failing command flips the flag off before raising.
    Stores catch BackendUnavailableError at their boundary.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        availability: Optional[AvailabilityTracker] = None,
    ) -> None:
        """Initialize Redis backend (connection checked via connect()).

        Args:
            client: Pre-built Redis client (tests inject a fake here)
            availability: Tracker to report connection events to
        """
        self.redis_client: Optional[redis.Redis] = client
        self.availability = availability or AvailabilityTracker()

    async def connect(
        self,
        redis_url: str = "redis://redis:6379/0",
        max_attempts: int = 3,
        socket_timeout: float = 5,
        backoff_step: float = 0.05,
        backoff_cap: float = 2.0,
    ) -> bool:
        """Connect to Redis with a bounded backoff.

        Never raises: after max_attempts failed pings the backend stays
        unavailable until a later health_check() succeeds.

        Args:
            redis_url: Redis connection URL
            max_attempts: Number of connection attempts before giving up
            socket_timeout: Socket and connect timeout in seconds
            backoff_step: Delay growth per attempt in seconds
            backoff_cap: Maximum delay between attempts in seconds

        Returns:
            True if connected, False otherwise
        """
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                max_connections=10,
            )

        for attempt in range(1, max_attempts + 1):
            try:
                if await self.redis_client.ping():
                    self.availability.mark_connected()
                    logger.info("Redis connected for conversation storage")
                    return True
            except redis.RedisError as e:
                self.availability.mark_error(e)
                logger.warning(f"Redis connection attempt {attempt}/{max_attempts} failed: {e}")
            if attempt < max_attempts:
                await asyncio.sleep(min(attempt * backoff_step, backoff_cap))

        logger.warning("Redis connection failed, conversation context will not be persisted")
        return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            logger.info("Redis connection closed")

    def is_available(self) -> bool:
        """Check if Redis is available."""
        return self.redis_client is not None and self.availability.available

    async def health_check(self) -> bool:
        """Ping Redis and update the availability flag.

        Returns:
            True only if the PING round trip succeeded
        """
        if self.redis_client is None:
            return self.availability.record_health_check(False)
        try:
            reply = await self.redis_client.ping()
        except redis.RedisError as e:
            return self.availability.record_health_check(False, e)
        return self.availability.record_health_check(reply is True or reply == "PONG")

    def _client(self) -> redis.Redis:
        if not self.is_available():
            raise BackendUnavailableError("Redis not available")
        return self.redis_client

    def _fail(self, operation: str, error: redis.RedisError) -> BackendUnavailableError:
        # Command-level errors (e.g. WRONGTYPE) leave the connection usable
        if isinstance(error, (redis.ConnectionError, redis.TimeoutError)):
            self.availability.mark_error(error)
        logger.warning(f"Redis error in {operation}: {error}")
        return BackendUnavailableError(f"Redis {operation} failed: {error}")

    async def get(self, key: str) -> Optional[str]:
        """Get a string value, or None if the key does not exist."""
        client = self._client()
        try:
            return await client.get(key)
        except redis.RedisError as e:
            raise self._fail("get", e) from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Set a string value with an expiry in seconds."""
        client = self._client()
        try:
            await client.set(key, value, ex=ttl)
        except redis.RedisError as e:
            raise self._fail("set", e) from e

    async def expire(self, key: str, ttl: int) -> bool:
        """Reset a key's expiry. Returns False if the key does not exist."""
        client = self._client()
        try:
            return bool(await client.expire(key, ttl))
        except redis.RedisError as e:
            raise self._fail("expire", e) from e

    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        client = self._client()
        try:
            return await client.delete(*keys)
        except redis.RedisError as e:
            raise self._fail("delete", e) from e

    async def scan_keys(self, pattern: str) -> List[str]:
        """Collect all keys matching a glob pattern using SCAN."""
        client = self._client()
        try:
            return [key async for key in client.scan_iter(match=pattern)]
        except redis.RedisError as e:
            raise self._fail("scan", e) from e

    async def add_to_set(self, key: str, member: str, ttl: int) -> None:
        """Add a member to a set and refresh the set's expiry."""
        client = self._client()
        try:
            async with client.pipeline(transaction=True) as pipeline:
                pipeline.sadd(key, member)
                pipeline.expire(key, ttl)
                await pipeline.execute()
        except redis.RedisError as e:
            raise self._fail("sadd", e) from e

    async def remove_from_set(self, key: str, *members: str) -> None:
        """Remove members from a set."""
        client = self._client()
        try:
            await client.srem(key, *members)
        except redis.RedisError as e:
            raise self._fail("srem", e) from e

    async def set_members(self, key: str) -> List[str]:
        """Return all members of a set (unordered)."""
        client = self._client()
        try:
            return list(await client.smembers(key))
        except redis.RedisError as e:
            raise self._fail("smembers", e) from e
