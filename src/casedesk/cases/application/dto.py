"""
Case Application DTOs
======================

Pydantic models for case request/response validation.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from casedesk.cases.domain import Case


# ========== Type Aliases for Literals ==========
DomainStr = Literal["E-commerce", "Travel", "Telecommunications", "Banking Services"]
PriorityStr = Literal["high", "low"]
CaseStatusStr = Literal["open", "in-progress", "resolved"]


# ========== Request DTOs ==========

class CaseCreateRequest(BaseModel):
    """Request model for explicit case creation."""
    order_id: str = Field(..., min_length=1, description="Order the case is about")
    product_index: int = Field(..., ge=0, description="Index of the product within the order")
    description: str = Field(..., min_length=1, description="Problem description")
    domain: Optional[DomainStr] = Field(default=None)


class AgentResponseRequest(BaseModel):
    """Request model for an agent reply."""
    message: str = Field(..., min_length=1)


class CaseUpdateRequest(BaseModel):
    """Request model for agent case updates. Omitted fields are unchanged."""
    status: Optional[CaseStatusStr] = None
    priority: Optional[PriorityStr] = None
    domain: Optional[DomainStr] = None
    description: Optional[str] = Field(default=None, min_length=1)


class AgentOnlyRequest(BaseModel):
    """Request model for the agent-only toggle."""
    enabled: bool


# ========== Response DTOs ==========

class CaseResponseInfo(BaseModel):
    """One message on a case."""
    agent_id: Optional[str]
    message: str
    timestamp: datetime


class CaseInfo(BaseModel):
    """Case information in API responses."""
    id: str
    user_id: str
    order_id: str
    product_index: int
    domain: DomainStr
    description: str
    priority: PriorityStr
    status: CaseStatusStr
    responses: List[CaseResponseInfo] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, case: Case) -> "CaseInfo":
        return cls(
            id=case.id,
            user_id=case.user_id,
            order_id=case.order_id,
            product_index=case.product_index,
            domain=case.domain,
            description=case.description,
            priority=case.priority,
            status=case.status,
            responses=[
                CaseResponseInfo(agent_id=r.agent_id, message=r.message, timestamp=r.timestamp)
                for r in case.responses
            ],
            created_at=case.created_at,
            updated_at=case.updated_at,
        )


class CaseEnvelope(BaseModel):
    """Single-case response with a status message."""
    message: str
    case: CaseInfo


class CaseListResponse(BaseModel):
    """List of cases."""
    cases: List[CaseInfo]
    total_count: int


class ThreadMessage(BaseModel):
    """One entry of a case thread."""
    sender: str
    message: str
    timestamp: datetime


class CaseSummary(BaseModel):
    """Case header shown above a thread."""
    id: str
    order_id: str
    product_index: int
    domain: DomainStr
    status: CaseStatusStr
    priority: PriorityStr


class CaseThreadResponse(BaseModel):
    """Case responses in order."""
    case: CaseSummary
    thread: List[ThreadMessage]


class AgentOnlyResponse(BaseModel):
    message: str
    case_id: str
    enabled: bool
