"""
Case Domain Entities
====================

The support case and its lifecycle.

A case is tied to one (user, order, product index) triple. Its status
moves open -> in-progress -> resolved, and a resolved case returns to
open when the customer writes again.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from casedesk.config import CaseStatus, DEFAULT_DOMAIN, Priority
from casedesk.core import DomainException


CLOSING_NOTE = "Marked as resolved. If you need more help, tap 'Need more help'."

RESOLUTION_SUMMARY_PREFIX = "Resolution Summary: "
RESOLUTION_SUMMARY_RESPONSES = 6
RESOLUTION_SUMMARY_MAX_CHARS = 480

# Allowed agent-driven status changes
ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    CaseStatus.OPEN: {CaseStatus.IN_PROGRESS, CaseStatus.RESOLVED},
    CaseStatus.IN_PROGRESS: {CaseStatus.OPEN, CaseStatus.RESOLVED},
    CaseStatus.RESOLVED: {CaseStatus.OPEN},
}

HIGH_PRIORITY_PATTERN = re.compile(
    r"payment|billing|refund|charge|transaction", re.IGNORECASE
)


def classify_priority(text: Optional[str]) -> str:
    """
    Canonical priority classifier used at creation and message time.

    Money-related wording (payment, billing, refund, charge, transaction,
    including inflections such as "charged") is high; everything else is low.
    """
    if text and HIGH_PRIORITY_PATTERN.search(text):
        return Priority.HIGH
    return Priority.LOW


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CaseResponse:
    """One message appended to a case. agent_id is None for user/bot messages."""
    message: str
    agent_id: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def sender(self) -> str:
        return "agent" if self.agent_id else "user/bot"


@dataclass
class Case:
    """
    Support case entity.

    Unique per (user_id, order_id, product_index). Never hard-deleted.
    """
    user_id: str
    order_id: str
    product_index: int
    description: str
    domain: str = DEFAULT_DOMAIN
    priority: str = Priority.LOW
    status: str = CaseStatus.OPEN
    id: Optional[str] = None
    responses: List[CaseResponse] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_resolved(self) -> bool:
        return self.status == CaseStatus.RESOLVED

    def can_transition_to(self, status: str) -> bool:
        return status == self.status or status in ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, status: str) -> bool:
        """
        Apply an agent-driven status change.

        Returns:
            True if the status changed, False for a same-state no-op

        Raises:
            DomainException: If the transition is not allowed
        """
        if status == self.status:
            return False
        if not self.can_transition_to(status):
            raise DomainException(
                f"Cannot move case from '{self.status}' to '{status}'",
                details={"case_id": self.id, "from": self.status, "to": status}
            )
        self.status = status
        self.touch()
        return True

    def reopen(self) -> bool:
        """Return a resolved case to open. Returns True if it was resolved."""
        if not self.is_resolved:
            return False
        self.status = CaseStatus.OPEN
        self.touch()
        return True

    def add_agent_response(self, agent_id: str, message: str) -> CaseResponse:
        """Append an agent reply; the case moves to in-progress unless resolved."""
        response = CaseResponse(message=message, agent_id=agent_id)
        self.responses.append(response)
        if self.status == CaseStatus.OPEN:
            self.status = CaseStatus.IN_PROGRESS
        self.touch()
        return response

    def touch(self) -> None:
        self.updated_at = _utcnow()


def build_resolution_summary(responses: List[CaseResponse]) -> str:
    """
    Summarize the last responses of a case for case memory.

    Each response is prefixed "Agent: " or "User/Bot: " and joined with
    " | "; the joined text is cut to 480 characters.
    """
    recent = responses[-RESOLUTION_SUMMARY_RESPONSES:]
    joined = " | ".join(
        f"Agent: {r.message}" if r.agent_id else f"User/Bot: {r.message}"
        for r in recent
    )
    return RESOLUTION_SUMMARY_PREFIX + joined[:RESOLUTION_SUMMARY_MAX_CHARS]
