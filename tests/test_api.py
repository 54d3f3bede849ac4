"""
End-to-end API tests.

The app runs against in-memory SQLite, a mocked Redis client, the
deterministic mock LLM client and in-memory chat/session stores.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from casedesk.cases.domain import CLOSING_NOTE
from casedesk.infrastructure.database import get_session
from casedesk.infrastructure.llm import MockLLMClient
from casedesk.infrastructure.realtime import EventBus
from casedesk.main import create_app
from casedesk.sla.application import StaticConfigProvider
from casedesk.triage.interfaces.controllers import get_chat_log, get_session_store

from fakes import InMemoryChatLog, InMemorySessionStore

USER = {"X-User-ID": "u1", "X-User-Name": "Asha"}
OTHER_USER = {"X-User-ID": "u2"}
AGENT = {"X-User-ID": "agent-7", "X-User-Role": "agent"}

SELECTION = {"order_id": "ORD-1", "product_index": 0, "name": "mug", "price": 249.0}


@pytest.fixture
def redis_client():
    return AsyncMock()


@pytest.fixture
def app(session_maker, redis_client, config_provider):
    application = create_app()
    application.state.triage_config = config_provider
    application.state.redis = redis_client
    application.state.llm_client = MockLLMClient(16)
    application.state.event_bus = EventBus()

    async def session_override():
        async with session_maker() as session:
            yield session
            await session.commit()

    session_store = InMemorySessionStore()
    chat_log = InMemoryChatLog()
    application.dependency_overrides[get_session] = session_override
    application.dependency_overrides[get_session_store] = lambda: session_store
    application.dependency_overrides[get_chat_log] = lambda: chat_log
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def select_product(client, headers=USER):
    response = await client.post("/triage/select-product", json=SELECTION, headers=headers)
    assert response.status_code == 200
    return response


# ============================================================================
# Service endpoints
# ============================================================================

class TestServiceEndpoints:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        checks = response.json()["checks"]
        assert checks == {"triage_config": "loaded", "llm_client": "mock", "redis": "connected"}

    async def test_correlation_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    async def test_sla_compute_uses_camel_case(self, client):
        response = await client.post("/sla/compute", json={"priority": "high", "sentiment": "neutral"})

        assert response.status_code == 200
        body = response.json()
        assert body["level"] == "express"
        assert body["targetMinutes"] == 15

    async def test_sentiment(self, client):
        response = await client.post("/sla/sentiment", json={"text": "please, no hurry"})
        assert response.json()["label"] == "cool"


# ============================================================================
# Chat
# ============================================================================

class TestChat:

    async def test_identity_required(self, client):
        response = await client.post("/triage/chat", json={"message": "hi"})
        assert response.status_code == 401

    async def test_selection_required(self, client):
        response = await client.post("/triage/chat", json={"message": "hi"}, headers=USER)

        assert response.status_code == 400
        assert response.json()["detail"] == "Select an order/product first"

    async def test_empty_message_rejected(self, client):
        await select_product(client)
        response = await client.post("/triage/chat", json={"message": "  "}, headers=USER)
        assert response.status_code == 400

    async def test_unknown_domain_rejected(self, client):
        payload = {**SELECTION, "domain": "Space"}
        response = await client.post("/triage/select-product", json=payload, headers=USER)
        assert response.status_code == 422

    async def test_faq_answer_and_history(self, client):
        seeded = await client.post(
            "/triage/faqs",
            json={"entries": [{"question": "Where is my order?", "answer": "It is on its way."}]},
            headers=AGENT,
        )
        assert seeded.json() == {"added": 1, "skipped": 0}

        await select_product(client)
        response = await client.post(
            "/triage/chat", json={"message": "where is my order?"}, headers=USER
        )

        body = response.json()
        assert body["source"] == "faq"
        assert body["reply"] == "It is on its way."
        assert body["case_id"]

        history = (await client.get("/triage/chat/history", headers=USER)).json()
        assert history["total_count"] == 1
        assert history["turns"][0]["case_id"] == body["case_id"]

        thread = (await client.get(
            "/triage/chat/thread", params={"order_id": "ORD-1", "product_index": 0}, headers=USER
        )).json()
        assert thread["case_id"] == body["case_id"]
        assert [e["sender"] for e in thread["thread"]] == ["user", "bot"]

    async def test_faq_seeding_requires_agent(self, client):
        response = await client.post("/triage/faqs", json={"entries": []}, headers=USER)
        assert response.status_code == 403

    async def test_generative_reply(self, client):
        await select_product(client)
        response = await client.post(
            "/triage/chat", json={"message": "The handle came loose"}, headers=USER
        )

        body = response.json()
        assert body["source"] == "llm"
        assert body["routed"] == "cs_agent"
        assert body["sla"] == {"level": "standard", "targetMinutes": 60}


# ============================================================================
# Cases
# ============================================================================

class TestCases:

    async def test_users_cannot_list_all_cases(self, client):
        response = await client.get("/cases", headers=USER)
        assert response.status_code == 403

    async def test_create_and_list_mine(self, client):
        response = await client.post(
            "/cases",
            json={"order_id": "ORD-9", "product_index": 1, "description": "Billing is wrong"},
            headers=USER,
        )

        assert response.status_code == 201
        assert response.json()["case"]["priority"] == "high"

        mine = (await client.get("/cases/mine", headers=USER)).json()
        assert mine["total_count"] == 1
        assert (await client.get("/cases/mine", headers=OTHER_USER)).json()["total_count"] == 0

    async def test_refund_case_lifecycle(self, client, redis_client):
        await select_product(client)
        chat = (await client.post(
            "/triage/chat", json={"message": "I want a refund"}, headers=USER
        )).json()
        assert chat["source"] == "refund"
        assert chat["sla"] == {"level": "express", "targetMinutes": 15}
        case_id = chat["case_id"]

        listed = (await client.get("/cases", params={"priority": "high"}, headers=AGENT)).json()
        assert [c["id"] for c in listed["cases"]] == [case_id]
        assert listed["cases"][0]["description"] == "[Refund Request] I want a refund"

        replied = await client.post(
            f"/cases/{case_id}/responses", json={"message": "Refund approved"}, headers=AGENT
        )
        assert replied.json()["case"]["status"] == "in-progress"
        redis_client.set.assert_any_await(f"agent-only:{case_id}", "1", ex=1800)

        thread = (await client.get(f"/cases/{case_id}/thread", headers=USER)).json()
        assert [(m["sender"], m["message"]) for m in thread["thread"]] == [("agent", "Refund approved")]
        assert (await client.get(f"/cases/{case_id}/thread", headers=OTHER_USER)).status_code == 403

        resolved = (await client.put(
            f"/cases/{case_id}", json={"status": "resolved"}, headers=AGENT
        )).json()
        assert resolved["case"]["status"] == "resolved"
        assert resolved["case"]["responses"][-1]["message"] == CLOSING_NOTE
        redis_client.delete.assert_any_await(f"agent-only:{case_id}")

        stats = (await client.get("/triage/stats", headers=USER)).json()
        assert stats["case_memories"] == 1
        assert stats["cases_by_status"] == {"resolved": 1}

        unified = (await client.get(f"/cases/{case_id}/unified-thread", headers=AGENT)).json()
        senders = [e["sender"] for e in unified["thread"]]
        assert senders[:2] == ["user", "bot"]
        assert senders.count("agent") == 2

    async def test_reopening_resolved_case_is_rejected_as_in_progress(self, client):
        created = (await client.post(
            "/cases",
            json={"order_id": "ORD-2", "product_index": 0, "description": "Broken"},
            headers=USER,
        )).json()
        case_id = created["case"]["id"]

        await client.put(f"/cases/{case_id}", json={"status": "resolved"}, headers=AGENT)
        response = await client.put(f"/cases/{case_id}", json={"status": "in-progress"}, headers=AGENT)

        assert response.status_code == 409

    async def test_unknown_case_is_404(self, client):
        response = await client.put(
            "/cases/00000000-0000-0000-0000-000000000000/agent-only",
            json={"enabled": True},
            headers=AGENT,
        )
        assert response.status_code == 404


# ============================================================================
# Event stream access
# ============================================================================

class TestEventStreamAccess:

    async def test_user_cannot_join_another_users_case_room(self, client):
        created = (await client.post(
            "/cases",
            json={"order_id": "ORD-3", "product_index": 0, "description": "Late"},
            headers=USER,
        )).json()

        response = await client.get(
            "/events/stream",
            params={"case_ids": created["case"]["id"]},
            headers=OTHER_USER,
        )

        assert response.status_code == 403

    async def test_unknown_case_room_is_404(self, client):
        response = await client.get(
            "/events/stream",
            params={"case_ids": "00000000-0000-0000-0000-000000000000"},
            headers=USER,
        )

        assert response.status_code == 404
