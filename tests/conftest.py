import fnmatch
from typing import Dict, Optional, Set

import pytest
import redis.asyncio as redis

from conversation_memory.infrastructure import AsyncRedisBackend
from conversation_memory.memory import AgentConversationStore, ConversationStore


class FakePipeline:
    """Buffers set commands and applies them on execute()."""

    def __init__(self, client: "FakeRedis") -> None:
        self.client = client
        self.commands = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        self.commands.clear()

    def sadd(self, key, *members):
        self.commands.append(("sadd", key, members))
        return self

    def expire(self, key, ttl):
        self.commands.append(("expire", key, ttl))
        return self

    async def execute(self):
        self.client._check()
        results = []
        for name, key, arg in self.commands:
            if name == "sadd":
                results.append(await self.client.sadd(key, *arg))
            else:
                results.append(await self.client.expire(key, arg))
        return results


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client used by AsyncRedisBackend."""

    def __init__(self) -> None:
        self.strings: Dict[str, str] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.ttls: Dict[str, int] = {}
        self.error: Optional[Exception] = None
        self.ping_reply = True
        self.ping_calls = 0
        self.closed = False

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    def expire_now(self, key: str) -> None:
        """Simulate TTL expiry of a key."""
        self.strings.pop(key, None)
        self.sets.pop(key, None)
        self.ttls.pop(key, None)

    async def ping(self):
        self.ping_calls += 1
        self._check()
        return self.ping_reply

    async def get(self, key):
        self._check()
        return self.strings.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.strings[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def expire(self, key, ttl):
        self._check()
        if key in self.strings or key in self.sets:
            self.ttls[key] = ttl
            return True
        return False

    async def delete(self, *keys):
        self._check()
        count = 0
        for key in keys:
            if key in self.strings or key in self.sets:
                count += 1
            self.expire_now(key)
        return count

    async def scan_iter(self, match=None):
        self._check()
        for key in list(self.strings):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def sadd(self, key, *members):
        self._check()
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def srem(self, key, *members):
        self._check()
        bucket = self.sets.get(key, set())
        removed = len(bucket & set(members))
        bucket.difference_update(members)
        return removed

    async def smembers(self, key):
        self._check()
        return set(self.sets.get(key, set()))

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def backend(fake_redis) -> AsyncRedisBackend:
    backend = AsyncRedisBackend(client=fake_redis)
    backend.availability.mark_connected()
    return backend


@pytest.fixture
def store(backend) -> ConversationStore:
    return ConversationStore(backend, ttl=3600, key_prefix="cursor")


@pytest.fixture
def agent_store(backend) -> AgentConversationStore:
    return AgentConversationStore(backend, ttl=3600, key_prefix="agent")


@pytest.fixture
def connection_error() -> redis.ConnectionError:
    return redis.ConnectionError("Connection refused")
