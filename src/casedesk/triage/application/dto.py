"""
Triage Application DTOs
========================

Data Transfer Objects for Triage API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from casedesk.triage.domain import ChatTurn, SelectedProduct, SimilarCase, TriageReply


# ========== Type Aliases for Literals ==========
DomainStr = Literal["E-commerce", "Travel", "Telecommunications", "Banking Services"]
ReplySourceStr = Literal["faq", "case-memory", "llm", "refund", "agent", "user"]


# ========== Request DTOs ==========

class SelectProductRequest(BaseModel):
    """Request model for choosing the product a conversation is about."""
    order_id: str = Field(..., min_length=1, description="Order identifier")
    product_index: int = Field(..., ge=0, description="Index of the product within the order")
    name: Optional[str] = Field(default=None, description="Product display name")
    quantity: int = Field(default=1, ge=1)
    price: Optional[float] = Field(default=None, ge=0)
    domain: DomainStr = Field(default="E-commerce")
    status: Optional[str] = Field(default=None, description="Order/delivery status")

    def to_domain(self) -> SelectedProduct:
        return SelectedProduct(
            order_id=self.order_id,
            product_index=self.product_index,
            name=self.name,
            quantity=self.quantity,
            price=self.price,
            domain=self.domain,
            status=self.status,
        )


class ChatRequest(BaseModel):
    """Request model for an inbound chat message."""
    message: str = Field(..., description="Customer message")

    @field_validator("message")
    @classmethod
    def validate_message_length(cls, v: str) -> str:
        """Ensure the message is not too long for the model."""
        if len(v) > 4000:
            raise ValueError("Message too long (max 4000 characters)")
        return v


class FaqSeedItem(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    domain: DomainStr = Field(default="E-commerce")


class FaqSeedRequest(BaseModel):
    """Request model for adding FAQ entries. Empty means the built-in catalogue."""
    entries: List[FaqSeedItem] = Field(default_factory=list)


# ========== Response DTOs ==========

class SelectedProductInfo(BaseModel):
    order_id: str
    product_index: int
    name: Optional[str] = None
    quantity: int = 1
    price: Optional[float] = None
    domain: DomainStr
    status: Optional[str] = None

    @classmethod
    def from_domain(cls, product: SelectedProduct) -> "SelectedProductInfo":
        return cls(
            order_id=product.order_id,
            product_index=product.product_index,
            name=product.name,
            quantity=product.quantity,
            price=product.price,
            domain=product.domain,
            status=product.status,
        )


class SelectProductResponse(BaseModel):
    message: str
    product: Optional[SelectedProductInfo] = None


class SimilarCaseInfo(BaseModel):
    """Case-memory hit in API responses."""
    case_id: str
    summary: str
    score: float
    order_id: Optional[str] = None
    product_index: Optional[int] = None

    @classmethod
    def from_domain(cls, hit: SimilarCase) -> "SimilarCaseInfo":
        return cls(
            case_id=hit.case_id,
            summary=hit.summary,
            score=hit.score,
            order_id=hit.order_id,
            product_index=hit.product_index,
        )


class ChatReplyResponse(BaseModel):
    """Response model for an inbound chat message."""
    source: ReplySourceStr
    case_id: Optional[str] = None
    reply: Optional[str] = None
    routed: Optional[str] = None
    queued: bool = False
    score: Optional[float] = None
    sla: Optional[Dict[str, object]] = None
    similar_cases: List[SimilarCaseInfo] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: TriageReply) -> "ChatReplyResponse":
        return cls(
            source=result.source,
            case_id=result.case_id,
            reply=result.reply,
            routed=result.routed,
            queued=result.queued,
            score=result.score,
            sla=result.sla,
            similar_cases=[SimilarCaseInfo.from_domain(hit) for hit in result.similar_cases],
        )


class ChatTurnInfo(BaseModel):
    """One recorded exchange."""
    prompt: str
    reply: Optional[str] = None
    source: ReplySourceStr
    order_id: str
    product_index: int
    case_id: Optional[str] = None
    score: Optional[float] = None
    timestamp: datetime

    @classmethod
    def from_domain(cls, turn: ChatTurn) -> "ChatTurnInfo":
        return cls(
            prompt=turn.prompt,
            reply=turn.reply,
            source=turn.source,
            order_id=turn.order_id,
            product_index=turn.product_index,
            case_id=turn.case_id,
            score=turn.score,
            timestamp=turn.timestamp,
        )


class ChatHistoryResponse(BaseModel):
    turns: List[ChatTurnInfo]
    total_count: int


class ThreadEntry(BaseModel):
    """One entry of a merged conversation thread."""
    sender: str
    message: str
    source: Optional[str] = None
    timestamp: datetime


class UnifiedThreadResponse(BaseModel):
    """Chat turns and case responses merged oldest first."""
    case_id: Optional[str] = None
    order_id: str
    product_index: int
    thread: List[ThreadEntry]


class FaqSeedResponse(BaseModel):
    added: int
    skipped: int


class StatsResponse(BaseModel):
    """Response model for triage statistics."""
    faq_entries: Dict[str, int]
    case_memories: int
    cases_by_status: Dict[str, int]
