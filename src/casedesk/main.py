"""
CaseDesk - Main Application
===========================

Customer-support triage service.

Modules:
- SLA: Sentiment scoring and response-time targets
- Cases: Case lifecycle, agent replies and the agent-only lock
- Triage: FAQ, case memory and generative replies for inbound messages

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, Redis, LLM, event fanout
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from casedesk.config import settings
from casedesk.core import ApplicationException

# Infrastructure
from casedesk.infrastructure.cache import close_redis, init_redis
from casedesk.infrastructure.database import (
    close_database, create_tables, get_session_context, init_database
)
from casedesk.infrastructure.llm import MockLLMClient, create_llm_client
from casedesk.infrastructure.realtime import EventBus

# SLA Module - configuration file
from casedesk.sla.infrastructure import TriageConfigManager

# Triage Module - FAQ seeding
from casedesk.triage.application import FaqMatcher
from casedesk.triage.domain.faq_catalog import DEFAULT_FAQS
from casedesk.triage.infrastructure import EmbeddingAdapter, SQLAlchemyFaqRepository

# Module Routers
from casedesk.cases.interfaces import cases_router
from casedesk.sla.interfaces import sla_router
from casedesk.triage.interfaces import case_thread_router, events_router, triage_router

# Middleware and Logging
from casedesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)
from casedesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def seed_faqs(app: FastAPI) -> None:
    """Seed the built-in FAQ catalogue; failures leave the service running."""
    try:
        async with get_session_context() as session:
            matcher = FaqMatcher(
                SQLAlchemyFaqRepository(session),
                EmbeddingAdapter(app.state.llm_client),
                app.state.triage_config
            )
            added, skipped = await matcher.seed(DEFAULT_FAQS)
        logger.info("FAQ catalogue seeded", extra={"added": added, "skipped": skipped})
    except Exception as e:
        logger.warning(f"FAQ seeding failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (and create tables in development)
    3. Load triage configuration and watch the file
    4. Initialize Redis, the LLM client and the event bus
    5. Seed FAQ entries when enabled

    SHUTDOWN:
    1. Stop config watcher
    2. Close Redis and database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting CaseDesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Tables are created here for development only; production runs migrations
    if settings.environment == "development":
        try:
            await create_tables()
        except Exception as e:
            logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Loading triage configuration")
    config_manager = TriageConfigManager(settings)
    config_manager.load(settings.triage_config_path)
    config_manager.start_watching()

    redis_client = init_redis(settings)

    logger.info("Initializing LLM client")
    llm_client = create_llm_client(settings)

    # Store shared resources in app state for dependency injection
    app.state.settings = settings
    app.state.triage_config = config_manager
    app.state.redis = redis_client
    app.state.llm_client = llm_client
    app.state.event_bus = EventBus()

    if settings.seed_faqs_on_startup:
        await seed_faqs(app)

    logger.info("CaseDesk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down CaseDesk")

    config_manager.stop_watching()
    await close_redis()
    await close_database()

    logger.info("CaseDesk shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers."""
    application = FastAPI(
        title="CaseDesk API",
        description="""
        ## Customer-Support Triage

        Every inbound message is answered by the first matching stage:
        agent-only lock, refund escalation, FAQ, similar earlier case, or
        a generative reply. Agents work cases through the `/cases`
        endpoints and receive live events over `/events/stream`.

        Identity is supplied by the API gateway through `X-User-ID`,
        `X-User-Role` (`user` or `agent`), `X-User-Name` and `X-User-Email`.
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    # Added last runs first: correlation id is set before request logging
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(CorrelationIDMiddleware)
    application.add_exception_handler(ApplicationException, application_exception_handler)
    application.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    application.include_router(sla_router)
    application.include_router(cases_router)
    application.include_router(case_thread_router)
    application.include_router(triage_router)
    application.include_router(events_router)

    @application.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for load balancers and orchestrators."""
        state = request.app.state
        llm_client = getattr(state, "llm_client", None)
        checks = {
            "triage_config": "loaded" if getattr(state, "triage_config", None) else "missing",
            "llm_client": "mock" if isinstance(llm_client, MockLLMClient) else (
                "available" if llm_client else "not_configured"
            ),
            "redis": "unknown",
        }

        redis_client = getattr(state, "redis", None)
        if redis_client is not None:
            try:
                await redis_client.ping()
                checks["redis"] = "connected"
            except Exception as e:
                checks["redis"] = f"error: {e}"

        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @application.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "CaseDesk",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "sla": {"prefix": "/sla"},
                "cases": {"prefix": "/cases"},
                "triage": {"prefix": "/triage"},
                "events": {"prefix": "/events"}
            }
        }

    return application


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "casedesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
