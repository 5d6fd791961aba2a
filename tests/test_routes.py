"""Tests for the HTTP API."""

import pytest
from httpx import ASGITransport, AsyncClient

from conversation_memory.main import build_stores, create_app


@pytest.fixture
def app(backend):
    app = create_app()
    build_stores(app, backend)
    return app


@pytest.fixture
def client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_redis(self, client):
        async with client:
            response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "redis": True}

    @pytest.mark.asyncio
    async def test_health_when_redis_down(self, client, fake_redis, connection_error):
        fake_redis.error = connection_error
        async with client:
            response = await client.get("/health")
        assert response.json()["redis"] is False


class TestConversationRoutes:

    @pytest.mark.asyncio
    async def test_force_new_conversation(self, client, app, fake_redis):
        async with client:
            response = await client.post("/cursor/conversation/new")
            telegram = await client.post("/cursor/conversation/new", json={"queueType": "telegram"})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["message"] == "New conversation created"
        assert fake_redis.strings["cursor:default:last_conversation_id"] == body["conversationId"]
        assert fake_redis.strings["cursor:telegram:last_conversation_id"] == telegram.json()["conversationId"]

    @pytest.mark.asyncio
    async def test_list_and_get(self, client, app):
        store = app.state.conversation_store
        await store.append_message("conv-1", "user", "hello")

        async with client:
            listed = await client.get("/conversations/api/list")
            detail = await client.get("/conversations/api/conv-1")
            missing = await client.get("/conversations/api/unknown")

        assert [c["conversationId"] for c in listed.json()] == ["conv-1"]
        assert detail.json()["messages"][0]["content"] == "hello"
        assert "lastAccessedAt" in detail.json()
        assert missing.status_code == 404


class TestAgentRoutes:

    @pytest.mark.asyncio
    async def test_full_conversation_flow(self, client):
        async with client:
            created = await client.post("/api/agent/new", json={"agentId": "test-agent"})
            conversation_id = created.json()["conversationId"]

            first = await client.post(
                f"/api/agent/{conversation_id}/message",
                json={"role": "user", "content": "Hello!", "source": "voice"},
            )
            await client.post(
                f"/api/agent/{conversation_id}/message",
                json={"role": "assistant", "content": "Hi there! How can I help?", "source": "text"},
            )
            fetched = await client.get(f"/api/agent/{conversation_id}")

        assert created.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["conversationId"] == conversation_id
        assert first.json()["message"]["messageId"].startswith("msg-")

        body = fetched.json()
        assert body["agentId"] == "test-agent"
        assert [m["content"] for m in body["messages"]] == ["Hello!", "Hi there! How can I help?"]
        assert body["messages"][0]["source"] == "voice"

    @pytest.mark.asyncio
    async def test_create_without_body(self, client):
        async with client:
            response = await client.post("/api/agent/new")
        assert response.status_code == 200
        assert response.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_message_validation_and_missing(self, client):
        async with client:
            created = await client.post("/api/agent/new", json={})
            conversation_id = created.json()["conversationId"]
            no_role = await client.post(f"/api/agent/{conversation_id}/message", json={"content": "Hello"})
            missing = await client.post("/api/agent/non-existent/message", json={"role": "user", "content": "Hello"})
            not_found = await client.get("/api/agent/non-existent-id")

        assert no_role.status_code == 422
        assert missing.status_code == 404
        assert not_found.status_code == 404

    @pytest.mark.asyncio
    async def test_list_pagination_and_sorting(self, client, app, fake_redis):
        store = app.state.agent_conversation_store
        ids = []
        for i, created_at in enumerate(["2024-01-01T00:00:00+00:00",
                                        "2024-01-02T00:00:00+00:00",
                                        "2024-01-03T00:00:00+00:00"]):
            conversation = await store.create_conversation(agent_id=f"agent-{i}")
            conversation.created_at = created_at
            await store.update_conversation(conversation)
            ids.append(conversation.conversation_id)

        async with client:
            page = await client.get("/api/agent/list?limit=2&offset=0&sortBy=createdAt&sortOrder=desc")
            ascending = await client.get("/api/agent/list?sortBy=createdAt&sortOrder=asc")

        body = page.json()
        assert [c["conversationId"] for c in body["conversations"]] == [ids[2], ids[1]]
        assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}
        assert [c["conversationId"] for c in ascending.json()["conversations"]] == ids

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "query",
        ["limit=0", "limit=-1", "limit=abc", "offset=-1", "offset=abc", "sortBy=invalidField", "sortOrder=invalid"],
    )
    async def test_list_rejects_bad_params(self, client, query):
        async with client:
            response = await client.get(f"/api/agent/list?{query}")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status_update(self, client):
        async with client:
            created = await client.post("/api/agent/new", json={})
            conversation_id = created.json()["conversationId"]
            updated = await client.patch(f"/api/agent/{conversation_id}/status", json={"status": "completed"})
            invalid = await client.patch(f"/api/agent/{conversation_id}/status", json={"status": "deleted"})
            missing = await client.patch("/api/agent/nope/status", json={"status": "archived"})

        assert updated.json()["status"] == "completed"
        assert invalid.status_code == 422
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_status_update_when_storage_down(self, client, backend):
        async with client:
            created = await client.post("/api/agent/new", json={})
            conversation_id = created.json()["conversationId"]
            backend.availability.mark_error(RuntimeError("down"))
            response = await client.patch(f"/api/agent/{conversation_id}/status", json={"status": "completed"})

        assert response.status_code == 503
