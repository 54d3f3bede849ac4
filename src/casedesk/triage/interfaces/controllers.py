"""
Triage Controllers (API Routes)
================================

FastAPI routes for product selection, chat and the FAQ corpus.

Controllers delegate to application services.
"""

import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from casedesk.cases.application import CaseService
from casedesk.cases.domain import Case
from casedesk.cases.interfaces import get_case_memory_service, get_case_service
from casedesk.config import ReplySource, Settings
from casedesk.core import ValidationException
from casedesk.infrastructure.database import get_session
from casedesk.infrastructure.llm import ILLMClient
from casedesk.infrastructure.realtime import EventBus
from casedesk.shared.api.dependencies import (
    get_app_settings,
    get_config_provider,
    get_event_bus,
    get_llm_client,
    get_redis_client,
)
from casedesk.shared.api.identity import Identity, get_agent_identity, get_identity
from casedesk.shared.infrastructure.logging import get_logger, log_latency
from casedesk.sla.application import ITriageConfigProvider
from casedesk.triage.application import (
    CaseMemoryService,
    ChatHistoryResponse,
    ChatReplyResponse,
    ChatRequest,
    ChatTurnInfo,
    FaqMatcher,
    FaqSeedRequest,
    FaqSeedResponse,
    GenerativeReplyService,
    ISessionStore,
    IChatLogStore,
    SelectedProductInfo,
    SelectProductRequest,
    SelectProductResponse,
    StatsResponse,
    ThreadEntry,
    TriagePipeline,
    UnifiedThreadResponse,
)
from casedesk.triage.domain import ChatTurn
from casedesk.triage.domain.faq_catalog import DEFAULT_FAQS
from casedesk.triage.infrastructure import (
    EmbeddingAdapter,
    RedisChatLogStore,
    RedisSessionStore,
    SQLAlchemyFaqRepository,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Triage"])
case_thread_router = APIRouter(prefix="/cases", tags=["Cases"])


# ========== Example payloads for Swagger ==========

CHAT_RESPONSE_EXAMPLE = {
    "source": "faq",
    "case_id": "123e4567-e89b-12d3-a456-426614174000",
    "reply": "Your order is typically delivered within 3-5 business days.",
    "routed": None,
    "queued": False,
    "score": 0.91,
    "sla": None,
    "similar_cases": []
}

REFUND_RESPONSE_EXAMPLE = {
    "source": "refund",
    "case_id": "123e4567-e89b-12d3-a456-426614174000",
    "reply": "Got it. This looks like a refund request — we've escalated it to our "
             "support team. We'll take care of it.",
    "routed": "cs_agent",
    "queued": False,
    "score": None,
    "sla": {"level": "express", "targetMinutes": 15},
    "similar_cases": []
}


# ========== Dependencies ==========

def get_session_store(redis_client: Redis = Depends(get_redis_client)) -> ISessionStore:
    return RedisSessionStore(redis_client)


def get_chat_log(redis_client: Redis = Depends(get_redis_client)) -> IChatLogStore:
    return RedisChatLogStore(redis_client)


def get_faq_matcher(
    db: AsyncSession = Depends(get_session),
    llm_client: ILLMClient = Depends(get_llm_client),
    config_provider: ITriageConfigProvider = Depends(get_config_provider)
) -> FaqMatcher:
    return FaqMatcher(SQLAlchemyFaqRepository(db), EmbeddingAdapter(llm_client), config_provider)


def get_generator(
    llm_client: ILLMClient = Depends(get_llm_client),
    app_settings: Settings = Depends(get_app_settings)
) -> GenerativeReplyService:
    return GenerativeReplyService(
        llm_client,
        app_settings.llm_models,
        temperature=app_settings.llm_temperature,
        max_tokens=app_settings.llm_max_tokens
    )


def get_pipeline(
    case_service: CaseService = Depends(get_case_service),
    faq_matcher: FaqMatcher = Depends(get_faq_matcher),
    case_memory: CaseMemoryService = Depends(get_case_memory_service),
    generator: GenerativeReplyService = Depends(get_generator),
    chat_log: IChatLogStore = Depends(get_chat_log),
    event_bus: EventBus = Depends(get_event_bus),
    config_provider: ITriageConfigProvider = Depends(get_config_provider)
) -> TriagePipeline:
    """Get the triage pipeline bound to the request's session."""
    return TriagePipeline(
        case_service,
        faq_matcher,
        case_memory,
        generator,
        chat_log,
        event_bus,
        config_provider
    )


# ========== Thread helpers ==========

def _aware(timestamp: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything here is UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _merge_thread(turns: List[ChatTurn], case: Optional[Case]) -> List[ThreadEntry]:
    """Chat turns and case responses, oldest first."""
    entries: List[ThreadEntry] = []
    for turn in turns:
        timestamp = _aware(turn.timestamp)
        entries.append(ThreadEntry(
            sender="user", message=turn.prompt, source=ReplySource.USER, timestamp=timestamp
        ))
        if turn.reply:
            entries.append(ThreadEntry(
                sender="bot", message=turn.reply, source=turn.source, timestamp=timestamp
            ))
    if case is not None:
        for response in case.responses:
            entries.append(ThreadEntry(
                sender=response.sender,
                message=response.message,
                source=ReplySource.AGENT if response.agent_id else ReplySource.USER,
                timestamp=_aware(response.timestamp),
            ))
    entries.sort(key=lambda entry: entry.timestamp)
    return entries


# ========== Route Handlers ==========

@router.post(
    "/select-product",
    response_model=SelectProductResponse,
    summary="Choose the product to chat about",
    description="""
    Store the order/product the following chat messages refer to. The
    selection expires after the configured TTL.
    """
)
async def select_product(
    payload: SelectProductRequest,
    identity: Identity = Depends(get_identity),
    store: ISessionStore = Depends(get_session_store),
    config_provider: ITriageConfigProvider = Depends(get_config_provider)
) -> SelectProductResponse:
    product = payload.to_domain()
    ttl = config_provider.get_config().selected_product_ttl_seconds
    await store.set_selected_product(identity.user_id, product, ttl)

    logger.info(
        "Product selected",
        extra={
            "user_id": identity.user_id,
            "order_id": product.order_id,
            "product_index": product.product_index
        }
    )
    return SelectProductResponse(
        message="Product selected",
        product=SelectedProductInfo.from_domain(product)
    )


@router.delete(
    "/select-product",
    response_model=SelectProductResponse,
    summary="Forget the selected product"
)
async def clear_selected_product(
    identity: Identity = Depends(get_identity),
    store: ISessionStore = Depends(get_session_store)
) -> SelectProductResponse:
    await store.clear_selected_product(identity.user_id)
    return SelectProductResponse(message="Selection cleared")


@router.post(
    "/chat",
    response_model=ChatReplyResponse,
    summary="Send a chat message",
    description="""
    Triage a customer message about the selected product.

    Stages, first match wins:
    1. Agent-only lock: the message is queued for a human agent
    2. Refund keywords: escalated as a high-priority refund case
    3. FAQ match (score >= 0.76)
    4. Similar earlier case (score >= 0.72)
    5. Generative reply, or a static escalation text when no model answers
    """,
    responses={
        200: {
            "description": "Message triaged",
            "content": {
                "application/json": {
                    "examples": {
                        "faq": {"value": CHAT_RESPONSE_EXAMPLE},
                        "refund": {"value": REFUND_RESPONSE_EXAMPLE}
                    }
                }
            }
        },
        400: {"description": "Empty message or no product selected"},
        401: {"description": "Missing identity headers"}
    }
)
async def chat(
    request: Request,
    payload: ChatRequest,
    identity: Identity = Depends(get_identity),
    store: ISessionStore = Depends(get_session_store),
    pipeline: TriagePipeline = Depends(get_pipeline)
) -> ChatReplyResponse:
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    if not payload.message.strip():
        raise ValidationException("Message is required")

    product = await store.get_selected_product(identity.user_id)
    if product is None:
        raise ValidationException("Select an order/product first")

    with log_latency(logger, "triage", correlation_id=correlation_id):
        result = await pipeline.handle(identity, payload.message, product)

    logger.info(
        "Chat message handled",
        extra={
            "correlation_id": correlation_id,
            "case_id": result.case_id,
            "source": result.source,
            "latency_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )
    return ChatReplyResponse.from_domain(result)


@router.get(
    "/chat/history",
    response_model=ChatHistoryResponse,
    summary="Chat turns, newest first",
    description="One product conversation when order_id and product_index are given, else all of them."
)
async def chat_history(
    order_id: Optional[str] = Query(default=None),
    product_index: Optional[int] = Query(default=None, ge=0),
    identity: Identity = Depends(get_identity),
    chat_log: IChatLogStore = Depends(get_chat_log)
) -> ChatHistoryResponse:
    if order_id is not None and product_index is not None:
        turns = list(reversed(await chat_log.list_turns(identity.user_id, order_id, product_index)))
    else:
        turns = await chat_log.list_user_turns(identity.user_id)
    return ChatHistoryResponse(
        turns=[ChatTurnInfo.from_domain(t) for t in turns],
        total_count=len(turns)
    )


@router.get(
    "/chat/thread",
    response_model=UnifiedThreadResponse,
    summary="Chat turns and agent replies for one product, oldest first"
)
async def chat_thread(
    order_id: str = Query(..., min_length=1),
    product_index: int = Query(..., ge=0),
    identity: Identity = Depends(get_identity),
    chat_log: IChatLogStore = Depends(get_chat_log),
    case_service: CaseService = Depends(get_case_service)
) -> UnifiedThreadResponse:
    turns = await chat_log.list_turns(identity.user_id, order_id, product_index)
    case = await case_service.find_case(identity.user_id, order_id, product_index)
    return UnifiedThreadResponse(
        case_id=case.id if case else None,
        order_id=order_id,
        product_index=product_index,
        thread=_merge_thread(turns, case)
    )


@router.post(
    "/faqs",
    response_model=FaqSeedResponse,
    summary="Add FAQ entries (agents)",
    description="Embeds and stores each entry. An empty list seeds the built-in catalogue."
)
async def seed_faqs(
    payload: FaqSeedRequest,
    identity: Identity = Depends(get_agent_identity),
    matcher: FaqMatcher = Depends(get_faq_matcher)
) -> FaqSeedResponse:
    entries = [e.model_dump() for e in payload.entries] or DEFAULT_FAQS
    added, skipped = await matcher.seed(entries)
    logger.info(
        "FAQ seeding finished",
        extra={"agent_id": identity.user_id, "added": added, "skipped": skipped}
    )
    return FaqSeedResponse(added=added, skipped=skipped)


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Corpus sizes and case counts"
)
async def get_stats(
    identity: Identity = Depends(get_identity),
    matcher: FaqMatcher = Depends(get_faq_matcher),
    case_memory: CaseMemoryService = Depends(get_case_memory_service),
    case_service: CaseService = Depends(get_case_service)
) -> StatsResponse:
    return StatsResponse(
        faq_entries=await matcher.count_by_domain(),
        case_memories=await case_memory.count(),
        cases_by_status=await case_service.count_by_status()
    )


@case_thread_router.get(
    "/{case_id}/unified-thread",
    response_model=UnifiedThreadResponse,
    summary="Chat turns and case messages for a case (agents)"
)
async def unified_case_thread(
    case_id: str,
    identity: Identity = Depends(get_agent_identity),
    chat_log: IChatLogStore = Depends(get_chat_log),
    case_service: CaseService = Depends(get_case_service)
) -> UnifiedThreadResponse:
    case = await case_service.get_case(case_id)
    turns = await chat_log.list_turns(case.user_id, case.order_id, case.product_index)
    return UnifiedThreadResponse(
        case_id=case.id,
        order_id=case.order_id,
        product_index=case.product_index,
        thread=_merge_thread(turns, case)
    )
