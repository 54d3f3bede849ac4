"""
Triage Domain Entities
======================

Domain entities for the triage module.

Contains pure Python business objects for FAQ and case-memory matching,
chat turns, and the reply returned for an inbound message.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from casedesk.config import DEFAULT_DOMAIN


REFUND_KEYWORDS = ("refund", "money back", "chargeback", "return my money")

REFUND_REPLY = (
    "Got it. This looks like a refund request — we've escalated it to our "
    "support team. We'll take care of it."
)

FALLBACK_REPLY = "Thanks for the details. We're routing this to a specialist."

REFUND_DESCRIPTION_TAG = "[Refund Request]"


def is_refund_request(message: str) -> bool:
    """Substring match against the refund keywords, case-insensitive."""
    lowered = (message or "").lower()
    return any(keyword in lowered for keyword in REFUND_KEYWORDS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FaqEntry:
    """Curated question/answer pair for one domain."""
    question: str
    answer: str
    domain: str
    embedding: List[float] = field(default_factory=list)
    id: Optional[str] = None


@dataclass
class CaseMemoryRecord:
    """
    Searchable summary of one case.

    One record per case; re-indexing replaces the summary and embedding.
    """
    case_id: str
    summary: str
    domain: str = DEFAULT_DOMAIN
    embedding: List[float] = field(default_factory=list)
    order_id: Optional[str] = None
    product_index: Optional[int] = None
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class FaqMatch:
    """Accepted FAQ answer and its similarity score."""
    answer: str
    score: float
    question: Optional[str] = None


@dataclass(frozen=True)
class SimilarCase:
    """Case-memory search hit."""
    case_id: str
    summary: str
    score: float
    order_id: Optional[str] = None
    product_index: Optional[int] = None


@dataclass
class SelectedProduct:
    """
    The product a user is currently chatting about.

    Held as short-lived per-user session state and passed explicitly into
    the triage pipeline.
    """
    order_id: str
    product_index: int
    name: Optional[str] = None
    quantity: int = 1
    price: Optional[float] = None
    domain: str = DEFAULT_DOMAIN
    status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "productIndex": self.product_index,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
            "domain": self.domain,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectedProduct":
        return cls(
            order_id=str(data["orderId"]),
            product_index=int(data["productIndex"]),
            name=data.get("name"),
            quantity=int(data.get("quantity") or 1),
            price=data.get("price"),
            domain=data.get("domain") or DEFAULT_DOMAIN,
            status=data.get("status"),
        )


@dataclass
class ChatTurn:
    """
    One exchange in a product conversation.

    reply is None when the message was queued for a human agent.
    """
    prompt: str
    reply: Optional[str]
    source: str
    order_id: str
    product_index: int
    case_id: Optional[str] = None
    score: Optional[float] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "prompt": self.prompt,
            "reply": self.reply,
            "source": self.source,
            "orderId": self.order_id,
            "productIndex": self.product_index,
            "caseId": self.case_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.score is not None:
            data["score"] = self.score
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatTurn":
        timestamp = data.get("timestamp")
        if isinstance(timestamp, (int, float)):
            parsed = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        elif timestamp:
            parsed = datetime.fromisoformat(timestamp)
        else:
            parsed = _utcnow()
        return cls(
            prompt=data.get("prompt", ""),
            reply=data.get("reply"),
            source=data.get("source") or "bot",
            order_id=str(data.get("orderId", "")),
            product_index=int(data.get("productIndex", 0)),
            case_id=data.get("caseId"),
            score=data.get("score"),
            timestamp=parsed,
        )


@dataclass
class TriageReply:
    """Outcome of triaging one inbound message."""
    source: str
    case_id: Optional[str] = None
    reply: Optional[str] = None
    routed: Optional[str] = None
    queued: bool = False
    score: Optional[float] = None
    sla: Optional[Dict[str, Any]] = None
    similar_cases: List[SimilarCase] = field(default_factory=list)


class ReplyPromptBuilder:
    """
    Builds the grounding prompt for the generative fallback.

    Following DRY principle - all prompt logic in one place.
    """

    INSTRUCTIONS = [
        "Instruction:",
        "- Give a concise helpful answer.",
        "- If not resolvable without human help, politely say we'll assign a specialist.",
        "- Never ask for card or OTP.",
    ]

    @classmethod
    def build_prompt(
        cls,
        domain: str,
        message: str,
        product: SelectedProduct,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None
    ) -> str:
        """Build the prompt from identity, selected product and message."""
        price = f"₹{product.price}" if product.price is not None else ""
        product_line = " ".join(
            part for part in (
                "Product:",
                product.name or "unknown",
                f"x{product.quantity}",
                price,
                product.status or "",
            ) if part
        )
        return "\n".join([
            f"You are a customer-support assistant for {domain}.",
            f"User: {user_name or 'Customer'} ({user_email or 'no email'})",
            product_line,
            f"Order: {product.order_id}",
            *cls.INSTRUCTIONS,
            f'User message: "{message}"',
            "Return only plain text (no JSON).",
        ])

