"""
Case Controllers (API Routes)
==============================

FastAPI routes for the case lifecycle.

Controllers are thin - they delegate to CaseService. Agent-only routes
depend on get_agent_identity, which rejects callers without the agent
role before any work is done.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from casedesk.cases.application import (
    AgentOnlyRequest,
    AgentOnlyResponse,
    AgentResponseRequest,
    CaseCreateRequest,
    CaseEnvelope,
    CaseInfo,
    CaseListResponse,
    CaseService,
    CaseSummary,
    CaseThreadResponse,
    CaseUpdateRequest,
    ThreadMessage,
)
from casedesk.cases.application.dto import CaseStatusStr, DomainStr, PriorityStr
from casedesk.cases.infrastructure import RedisAgentLockStore, SQLAlchemyCaseRepository
from casedesk.infrastructure.database import get_session
from casedesk.infrastructure.llm import ILLMClient
from casedesk.infrastructure.realtime import EventBus
from casedesk.shared.api.dependencies import (
    get_config_provider,
    get_event_bus,
    get_llm_client,
    get_redis_client,
)
from casedesk.shared.api.identity import Identity, get_agent_identity, get_identity
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application import ITriageConfigProvider
from casedesk.triage.application import CaseMemoryService
from casedesk.triage.infrastructure import EmbeddingAdapter, SQLAlchemyCaseMemoryRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/cases", tags=["Cases"])


# ========== Dependencies ==========

def get_case_memory_service(
    db: AsyncSession = Depends(get_session),
    llm_client: ILLMClient = Depends(get_llm_client),
    config_provider: ITriageConfigProvider = Depends(get_config_provider)
) -> CaseMemoryService:
    return CaseMemoryService(
        SQLAlchemyCaseMemoryRepository(db),
        EmbeddingAdapter(llm_client),
        config_provider
    )


def get_case_service(
    db: AsyncSession = Depends(get_session),
    redis_client: Redis = Depends(get_redis_client),
    config_provider: ITriageConfigProvider = Depends(get_config_provider),
    case_memory: CaseMemoryService = Depends(get_case_memory_service),
    event_bus: EventBus = Depends(get_event_bus)
) -> CaseService:
    """Get case service instance bound to the request's session."""
    return CaseService(
        SQLAlchemyCaseRepository(db),
        RedisAgentLockStore(redis_client),
        config_provider,
        indexer=case_memory,
        publisher=event_bus
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=CaseEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create or refresh the case for a product",
    description="""
    Open a case for one product of an order. A second call for the same
    (order, product) updates the existing case instead of creating another.

    Priority is derived from the description: payment, billing, refund,
    charge and transaction issues are high, everything else is low.
    """
)
async def create_case(
    payload: CaseCreateRequest,
    identity: Identity = Depends(get_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseEnvelope:
    case = await service.create_case(
        user_id=identity.user_id,
        order_id=payload.order_id,
        product_index=payload.product_index,
        description=payload.description,
        domain=payload.domain
    )
    return CaseEnvelope(message="Case processed", case=CaseInfo.from_domain(case))


@router.get(
    "/mine",
    response_model=CaseListResponse,
    summary="List the caller's cases"
)
async def list_my_cases(
    identity: Identity = Depends(get_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseListResponse:
    cases = await service.list_user_cases(identity.user_id)
    return CaseListResponse(
        cases=[CaseInfo.from_domain(c) for c in cases],
        total_count=len(cases)
    )


@router.get(
    "",
    response_model=CaseListResponse,
    summary="List cases (agents)",
    description="Newest activity first, optionally filtered by status, priority or domain."
)
async def list_cases(
    status_filter: Optional[CaseStatusStr] = Query(default=None, alias="status"),
    priority: Optional[PriorityStr] = Query(default=None),
    domain: Optional[DomainStr] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(get_agent_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseListResponse:
    cases = await service.list_cases(
        status=status_filter,
        priority=priority,
        domain=domain,
        limit=limit,
        offset=offset
    )
    return CaseListResponse(
        cases=[CaseInfo.from_domain(c) for c in cases],
        total_count=len(cases)
    )


@router.post(
    "/{case_id}/responses",
    response_model=CaseEnvelope,
    summary="Reply to a case (agents)",
    description="""
    Append an agent reply. The case moves to in-progress and automation is
    paused for it (agent-only) until the lock expires or the case is resolved.
    """
)
async def add_response(
    case_id: str,
    payload: AgentResponseRequest,
    identity: Identity = Depends(get_agent_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseEnvelope:
    case = await service.add_agent_response(case_id, identity.user_id, payload.message)
    return CaseEnvelope(message="Response added", case=CaseInfo.from_domain(case))


@router.put(
    "/{case_id}",
    response_model=CaseEnvelope,
    summary="Update a case (agents)",
    description="""
    Change status, priority, domain or description. Resolving a case posts
    the closing note, clears the agent-only lock and stores a resolution
    summary for future similar cases.
    """
)
async def update_case(
    case_id: str,
    payload: CaseUpdateRequest,
    identity: Identity = Depends(get_agent_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseEnvelope:
    case = await service.update_case(
        case_id,
        agent_id=identity.user_id,
        status=payload.status,
        priority=payload.priority,
        domain=payload.domain,
        description=payload.description
    )
    return CaseEnvelope(message="Case updated", case=CaseInfo.from_domain(case))


@router.put(
    "/{case_id}/agent-only",
    response_model=AgentOnlyResponse,
    summary="Toggle agent-only mode (agents)"
)
async def set_agent_only(
    case_id: str,
    payload: AgentOnlyRequest,
    identity: Identity = Depends(get_agent_identity),
    service: CaseService = Depends(get_case_service)
) -> AgentOnlyResponse:
    enabled = await service.set_agent_only(case_id, payload.enabled)
    return AgentOnlyResponse(
        message="Agent-only enabled" if enabled else "Agent-only disabled",
        case_id=case_id,
        enabled=enabled
    )


@router.get(
    "/{case_id}/thread",
    response_model=CaseThreadResponse,
    summary="Case messages in order (owner or agents)"
)
async def get_case_thread(
    request: Request,
    case_id: str,
    identity: Identity = Depends(get_identity),
    service: CaseService = Depends(get_case_service)
) -> CaseThreadResponse:
    case = await service.get_case_for_viewer(case_id, identity.user_id, identity.is_agent)

    logger.debug(
        "Case thread requested",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "case_id": case_id,
            "messages": len(case.responses)
        }
    )

    return CaseThreadResponse(
        case=CaseSummary(
            id=case.id,
            order_id=case.order_id,
            product_index=case.product_index,
            domain=case.domain,
            status=case.status,
            priority=case.priority
        ),
        thread=[
            ThreadMessage(sender=r.sender, message=r.message, timestamp=r.timestamp)
            for r in case.responses
        ]
    )
