"""
SLA Controllers (API Routes)
=============================

FastAPI routes for sentiment scoring and SLA computation.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends

from casedesk.shared.api.dependencies import get_config_provider
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application import (
    ITriageConfigProvider,
    SentimentRequest,
    SentimentResponse,
    SLAComputeRequest,
    SLAResponse,
    SLAService,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Dependencies ==========

def get_sla_service(
    config_provider: ITriageConfigProvider = Depends(get_config_provider)
) -> SLAService:
    """Get SLA service instance."""
    return SLAService(config_provider)


# ========== Route Handlers ==========

@router.post(
    "/sentiment",
    response_model=SentimentResponse,
    summary="Score message sentiment",
    responses={
        200: {
            "content": {
                "application/json": {"example": {"label": "cool", "score": 0.8}}
            }
        }
    }
)
def analyze_sentiment(
    request: SentimentRequest,
    service: SLAService = Depends(get_sla_service)
) -> SentimentResponse:
    """Classify the tone of a message as angry, neutral or cool."""
    result = service.analyze(request.text)
    return SentimentResponse(label=result.label, score=result.score)


@router.post(
    "/compute",
    response_model=SLAResponse,
    response_model_by_alias=True,
    summary="Compute SLA target",
    description="""
    Map a priority and a sentiment to a response-time tier.

    First match wins: angry -> express, high priority -> express,
    cool -> batched, otherwise standard.
    """
)
def compute_sla(
    request: SLAComputeRequest,
    service: SLAService = Depends(get_sla_service)
) -> SLAResponse:
    sentiment, target = service.compute(
        priority=request.priority,
        sentiment=request.sentiment,
        text=request.text
    )
    return SLAResponse(
        level=target.level,
        target_minutes=target.target_minutes,
        priority=request.priority,
        sentiment=sentiment.label
    )
