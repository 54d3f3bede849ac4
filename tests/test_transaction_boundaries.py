"""
Transaction boundaries around external calls.

The pipeline and CaseService run against SQLite through the real
repositories. Spies on the embedder, the LLM client and the publisher
record whether the session held flushed but uncommitted writes at the
moment each external call (or event) happened.
"""

import pytest
from sqlalchemy import event

from casedesk.cases.application import CaseService
from casedesk.cases.domain import Case
from casedesk.cases.infrastructure import SQLAlchemyCaseRepository
from casedesk.triage.application import (
    CaseMemoryService,
    FaqMatcher,
    GenerativeReplyService,
    TriagePipeline,
)
from casedesk.triage.domain import FaqEntry
from casedesk.triage.infrastructure import (
    SQLAlchemyCaseMemoryRepository,
    SQLAlchemyFaqRepository,
)

from fakes import (
    FakeEmbedder,
    InMemoryChatLog,
    InMemoryLockStore,
    RecordingPublisher,
    ScriptedLLMClient,
)

FAQ_QUESTION = "When will my order be delivered?"


class PendingWrites:
    """Tracks whether a session has flushed writes that are not committed yet."""

    def __init__(self, session):
        self.pending = False
        event.listen(session.sync_session, "after_flush", self._flushed)
        event.listen(session.sync_session, "after_transaction_end", self._ended)

    def _flushed(self, session, flush_context):
        self.pending = True

    def _ended(self, session, transaction):
        if transaction.parent is None:
            self.pending = False


class WriteCheckingEmbedder(FakeEmbedder):

    def __init__(self, writes, **kwargs):
        super().__init__(**kwargs)
        self.writes = writes
        self.pending_seen = []

    async def embed(self, text):
        self.pending_seen.append(self.writes.pending)
        return await super().embed(text)


class WriteCheckingLLMClient(ScriptedLLMClient):

    def __init__(self, writes):
        super().__init__()
        self.writes = writes
        self.pending_seen = []

    async def attempt_completion(self, model, messages, temperature=0.3, max_tokens=600):
        self.pending_seen.append(self.writes.pending)
        return await super().attempt_completion(model, messages, temperature, max_tokens)


class WriteCheckingPublisher(RecordingPublisher):

    def __init__(self, writes):
        super().__init__()
        self.writes = writes
        self.pending_seen = []

    async def publish(self, topic, event):
        self.pending_seen.append(self.writes.pending)
        return await super().publish(topic, event)


@pytest.fixture
def writes(db_session):
    return PendingWrites(db_session)


@pytest.fixture
def embedder(writes):
    return WriteCheckingEmbedder(writes, vectors={FAQ_QUESTION: [1.0, 0.0, 0.0, 0.0]})


@pytest.fixture
def llm_client(writes):
    return WriteCheckingLLMClient(writes)


@pytest.fixture
def publisher(writes):
    return WriteCheckingPublisher(writes)


@pytest.fixture
def case_repo(db_session):
    return SQLAlchemyCaseRepository(db_session)


@pytest.fixture
def faq_repo(db_session):
    return SQLAlchemyFaqRepository(db_session)


@pytest.fixture
def case_memory(db_session, embedder, config_provider):
    return CaseMemoryService(SQLAlchemyCaseMemoryRepository(db_session), embedder, config_provider)


@pytest.fixture
def case_service(case_repo, config_provider, case_memory, publisher):
    return CaseService(
        case_repo,
        InMemoryLockStore(),
        config_provider,
        indexer=case_memory,
        publisher=publisher,
    )


@pytest.fixture
def sql_pipeline(case_service, faq_repo, embedder, case_memory, llm_client, publisher, config_provider):
    return TriagePipeline(
        case_service,
        FaqMatcher(faq_repo, embedder, config_provider),
        case_memory,
        GenerativeReplyService(llm_client, ["model-a"]),
        InMemoryChatLog(),
        publisher,
        config_provider,
    )


def assert_no_pending_writes(*spies):
    for spy in spies:
        assert spy.pending_seen, f"{type(spy).__name__} was never called"
        assert not any(spy.pending_seen), f"{type(spy).__name__} saw uncommitted writes"


# ============================================================================
# Pipeline
# ============================================================================

class TestPipelineTransactions:

    async def test_new_case_is_committed_before_generative_stage(
        self, sql_pipeline, user, product, case_repo, embedder, llm_client, publisher
    ):
        result = await sql_pipeline.handle(user, "where is my parcel", product)

        assert result.source == "llm"
        assert_no_pending_writes(embedder, llm_client, publisher)
        stored = await case_repo.get_by_key("u1", "ORD-1", 0)
        assert stored.id == result.case_id

    async def test_reopened_case_is_committed_before_faq_stage(
        self, sql_pipeline, user, product, case_repo, faq_repo, db_session, embedder, publisher
    ):
        await faq_repo.create(FaqEntry(FAQ_QUESTION, "3-5 days.", "E-commerce", [1.0, 0.0, 0.0, 0.0]))
        await case_repo.upsert(Case(
            user_id="u1", order_id="ORD-1", product_index=0, description="old", status="resolved"
        ))
        await db_session.commit()

        result = await sql_pipeline.handle(user, FAQ_QUESTION, product)

        assert result.source == "faq"
        assert_no_pending_writes(embedder, publisher)
        assert (await case_repo.get_by_key("u1", "ORD-1", 0)).status == "open"

    async def test_refund_update_is_committed_before_indexing(
        self, sql_pipeline, user, product, embedder, publisher
    ):
        result = await sql_pipeline.handle(user, "I want a refund", product)

        assert result.source == "refund"
        assert_no_pending_writes(embedder, publisher)


# ============================================================================
# Agent operations
# ============================================================================

class TestCaseServiceTransactions:

    async def test_resolution_is_committed_before_summary_embedding(
        self, case_service, case_repo, embedder, publisher
    ):
        case = await case_service.create_case("u1", "ORD-1", 0, "Mug arrived broken")
        await case_service.add_agent_response(case.id, "agent-7", "Refund issued")

        await case_service.update_case(case.id, "agent-7", status="resolved")

        assert len(embedder.pending_seen) == 2
        assert_no_pending_writes(embedder, publisher)
        stored = await case_repo.get_by_id(case.id)
        assert stored.status == "resolved"
