"""
Shared fixtures.

Services run against the in-memory fakes in fakes.py; SQL repositories
run against an in-memory SQLite database through aiosqlite.
"""

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import casedesk.cases.infrastructure.models  # noqa: F401
import casedesk.triage.infrastructure.models  # noqa: F401
from casedesk.cases.application import CaseService
from casedesk.infrastructure.database import Base
from casedesk.shared.api.identity import Identity
from casedesk.sla.application import StaticConfigProvider
from casedesk.sla.domain import TriageConfig
from casedesk.triage.application import (
    CaseMemoryService,
    FaqMatcher,
    GenerativeReplyService,
    TriagePipeline,
)
from casedesk.triage.domain import SelectedProduct

from fakes import (
    FakeEmbedder,
    InMemoryCaseMemoryRepository,
    InMemoryCaseRepository,
    InMemoryChatLog,
    InMemoryFaqRepository,
    InMemoryLockStore,
    RecordingPublisher,
    ScriptedLLMClient,
)


# ============================================================================
# Configuration and identities
# ============================================================================

@pytest.fixture
def config_provider():
    return StaticConfigProvider(TriageConfig())


@pytest.fixture
def user():
    return Identity(user_id="u1", role="user", name="Asha", email="asha@example.com")


@pytest.fixture
def agent():
    return Identity(user_id="agent-7", role="agent", name="Ravi")


@pytest.fixture
def product():
    return SelectedProduct(
        order_id="ORD-1",
        product_index=0,
        name="mug",
        quantity=1,
        price=249.0,
        domain="E-commerce",
        status="delivered",
    )


# ============================================================================
# In-memory collaborators
# ============================================================================

@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def case_repo():
    return InMemoryCaseRepository()


@pytest.fixture
def lock_store():
    return InMemoryLockStore()


@pytest.fixture
def faq_repo():
    return InMemoryFaqRepository()


@pytest.fixture
def memory_repo():
    return InMemoryCaseMemoryRepository()


@pytest.fixture
def chat_log():
    return InMemoryChatLog()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm_client():
    return ScriptedLLMClient()


@pytest.fixture
def case_memory(memory_repo, embedder, config_provider):
    return CaseMemoryService(memory_repo, embedder, config_provider)


@pytest.fixture
def case_service(case_repo, lock_store, config_provider, case_memory, publisher):
    return CaseService(
        case_repo,
        lock_store,
        config_provider,
        indexer=case_memory,
        publisher=publisher,
    )


@pytest.fixture
def faq_matcher(faq_repo, embedder, config_provider):
    return FaqMatcher(faq_repo, embedder, config_provider)


@pytest.fixture
def generator(llm_client):
    return GenerativeReplyService(llm_client, ["model-a", "model-b"])


@pytest.fixture
def pipeline(case_service, faq_matcher, case_memory, generator, chat_log, publisher, config_provider):
    return TriagePipeline(
        case_service,
        faq_matcher,
        case_memory,
        generator,
        chat_log,
        publisher,
        config_provider,
    )


# ============================================================================
# SQLite
# ============================================================================

@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the
    # outer transaction instead of replacing it.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session
