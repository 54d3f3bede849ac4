"""Tests for the SQLAlchemy repositories against in-memory SQLite."""

from datetime import datetime, timedelta, timezone

import pytest

from casedesk.cases.domain import Case, CaseResponse
from casedesk.cases.infrastructure import SQLAlchemyCaseRepository
from casedesk.triage.application import CaseMemoryService
from casedesk.triage.domain import CaseMemoryRecord, FaqEntry
from casedesk.triage.infrastructure import (
    SQLAlchemyCaseMemoryRepository,
    SQLAlchemyFaqRepository,
)

from fakes import FakeEmbedder

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_case(user_id="u1", order_id="ORD-1", product_index=0, minutes=0, **kwargs):
    at = BASE_TIME + timedelta(minutes=minutes)
    return Case(
        user_id=user_id,
        order_id=order_id,
        product_index=product_index,
        description=kwargs.pop("description", "Mug arrived broken"),
        created_at=at,
        updated_at=at,
        **kwargs,
    )


# ============================================================================
# Cases
# ============================================================================

class TestCaseRepository:

    @pytest.fixture
    def repo(self, db_session):
        return SQLAlchemyCaseRepository(db_session)

    async def test_get_or_create_is_idempotent(self, repo):
        first, created = await repo.get_or_create(make_case())
        second, created_again = await repo.get_or_create(make_case(description="other"))

        assert created is True and created_again is False
        assert first.id == second.id
        assert second.description == "Mug arrived broken"

    async def test_upsert_updates_existing_row(self, repo):
        original = await repo.upsert(make_case())
        updated = await repo.upsert(make_case(description="Payment failed", priority="high"))

        assert updated.id == original.id
        assert updated.description == "Payment failed"
        assert updated.priority == "high"
        assert await repo.count_by_status() == {"open": 1}

    async def test_get_by_id_handles_malformed_ids(self, repo):
        assert await repo.get_by_id("not-a-uuid") is None

    async def test_responses_keep_append_order(self, repo):
        case = await repo.upsert(make_case())
        same_time = BASE_TIME
        for message in ("first", "second", "third"):
            await repo.append_response(case.id, CaseResponse(message=message, timestamp=same_time))

        loaded = await repo.get_by_id(case.id)
        assert [r.message for r in loaded.responses] == ["first", "second", "third"]

    async def test_save_persists_status(self, repo):
        case = await repo.upsert(make_case())
        case.status = "in-progress"
        await repo.save(case)

        assert (await repo.get_by_key("u1", "ORD-1", 0)).status == "in-progress"

    async def test_list_filters_and_orders_newest_first(self, repo):
        await repo.upsert(make_case(order_id="A", minutes=1))
        await repo.upsert(make_case(order_id="B", minutes=3, priority="high"))
        await repo.upsert(make_case(order_id="C", minutes=2, status="resolved"))

        assert [c.order_id for c in await repo.list({})] == ["B", "C", "A"]
        assert [c.order_id for c in await repo.list({"priority": "high"})] == ["B"]
        assert [c.order_id for c in await repo.list({"status": "open"})] == ["B", "A"]
        assert [c.order_id for c in await repo.list({}, limit=1, offset=1)] == ["C"]

    async def test_list_by_user(self, repo):
        await repo.upsert(make_case(user_id="u1"))
        await repo.upsert(make_case(user_id="u2"))

        cases = await repo.list_by_user("u1")
        assert [c.user_id for c in cases] == ["u1"]

    async def test_count_by_status(self, repo):
        await repo.upsert(make_case(order_id="A"))
        await repo.upsert(make_case(order_id="B", status="resolved"))
        await repo.upsert(make_case(order_id="C", status="resolved"))

        assert await repo.count_by_status() == {"open": 1, "resolved": 2}


# ============================================================================
# Case memory
# ============================================================================

class TestCaseMemoryRepository:

    @pytest.fixture
    def repo(self, db_session):
        return SQLAlchemyCaseMemoryRepository(db_session)

    async def test_upsert_keeps_one_row_per_case(self, repo):
        await repo.upsert(CaseMemoryRecord(case_id="c1", summary="first", embedding=[1.0]))
        await repo.upsert(CaseMemoryRecord(case_id="c1", summary="second", embedding=[0.5]))

        assert await repo.count() == 1
        records = await repo.list_by_domain("E-commerce", limit=10)
        assert records[0].summary == "second"
        assert records[0].embedding == [0.5]

    async def test_list_filters_domain_and_excluded_case(self, repo):
        await repo.upsert(CaseMemoryRecord(case_id="c1", summary="a"))
        await repo.upsert(CaseMemoryRecord(case_id="c2", summary="b"))
        await repo.upsert(CaseMemoryRecord(case_id="c3", summary="c", domain="Travel"))

        ids = {r.case_id for r in await repo.list_by_domain("E-commerce", limit=10, exclude_case_id="c1")}
        assert ids == {"c2"}
        assert len(await repo.list_by_domain(None, limit=10)) == 3

    async def test_same_description_indexed_twice(self, repo, config_provider):
        service = CaseMemoryService(repo, FakeEmbedder(), config_provider)
        case = Case(id="c8", user_id="u1", order_id="ORD-1", product_index=0, description="broken")

        await service.index_case(case)
        await service.index_case(case)

        assert await service.count() == 1

    async def test_indexing_a_case_twice_through_the_service(self, repo, config_provider):
        service = CaseMemoryService(repo, FakeEmbedder(), config_provider)
        case = Case(id="c9", user_id="u1", order_id="ORD-1", product_index=0, description="broken")

        await service.index_case(case)
        await service.index_resolution_summary(case, "Resolution Summary: Agent: refunded")

        assert await service.count() == 1
        records = await repo.list_by_domain("E-commerce", limit=10)
        assert records[0].summary == "Resolution Summary: Agent: refunded"
        assert records[0].order_id == "ORD-1"


# ============================================================================
# FAQ
# ============================================================================

class TestFaqRepository:

    @pytest.fixture
    def repo(self, db_session):
        return SQLAlchemyFaqRepository(db_session)

    async def test_create_and_list_by_domain(self, repo):
        await repo.create(FaqEntry("Where is my order?", "Track it.", "E-commerce", [1.0, 0.0]))
        await repo.create(FaqEntry("Change flight?", "Manage Booking.", "Travel", [0.0, 1.0]))

        entries = await repo.list_by_domain("E-commerce")
        assert [e.question for e in entries] == ["Where is my order?"]
        assert entries[0].embedding == [1.0, 0.0]
        assert entries[0].id is not None
        assert len(await repo.list_by_domain(None)) == 2

    async def test_exists_is_scoped_by_domain(self, repo):
        await repo.create(FaqEntry("Refund time?", "5 days.", "E-commerce"))

        assert await repo.exists("Refund time?", "E-commerce") is True
        assert await repo.exists("Refund time?", "Banking") is False

    async def test_count_by_domain(self, repo):
        await repo.create(FaqEntry("q1", "a", "E-commerce"))
        await repo.create(FaqEntry("q2", "a", "E-commerce"))
        await repo.create(FaqEntry("q3", "a", "Travel"))

        assert await repo.count_by_domain() == {"E-commerce": 2, "Travel": 1}


# ============================================================================
# Concurrent inserts
# ============================================================================

class TestCaseInsertRace:
    """Another writer commits the same key between our lookup and our insert."""

    @pytest.fixture
    def repo(self, db_session):
        return SQLAlchemyCaseRepository(db_session)

    @pytest.fixture
    async def winner(self, repo, db_session):
        case = await repo.upsert(make_case())
        await db_session.commit()
        return case

    @pytest.fixture
    def stale_lookup(self, repo, monkeypatch):
        lookup = repo._model_by_key
        misses = []

        async def first_lookup_misses(*key):
            if not misses:
                misses.append(key)
                return None
            return await lookup(*key)

        monkeypatch.setattr(repo, "_model_by_key", first_lookup_misses)
        return misses

    async def test_upsert_updates_the_winning_row(self, repo, winner, stale_lookup):
        result = await repo.upsert(make_case(description="Payment failed", priority="high"))

        assert stale_lookup
        assert result.id == winner.id
        assert result.description == "Payment failed"
        assert result.priority == "high"
        assert await repo.count_by_status() == {"open": 1}

    async def test_get_or_create_returns_the_winning_row(self, repo, winner, stale_lookup):
        result, created = await repo.get_or_create(make_case(description="other"))

        assert stale_lookup
        assert created is False
        assert result.id == winner.id
        assert result.description == "Mug arrived broken"

    async def test_conflict_keeps_earlier_writes_of_the_transaction(
        self, repo, winner, stale_lookup, db_session
    ):
        await repo.append_response(winner.id, CaseResponse(message="still here", timestamp=BASE_TIME))

        await repo.upsert(make_case(description="Payment failed"))
        await db_session.commit()

        loaded = await repo.get_by_id(winner.id)
        assert [r.message for r in loaded.responses] == ["still here"]
        assert loaded.description == "Payment failed"
