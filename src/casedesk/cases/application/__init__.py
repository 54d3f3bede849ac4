"""
Case Application Layer
======================

Contains:
- Services: CaseService (lifecycle, agent replies, agent-only lock)
- Interfaces: repository, lock store and case-memory indexer
- DTOs: Data transfer objects for API serialization
"""

from casedesk.cases.application.dto import (
    AgentOnlyRequest,
    AgentOnlyResponse,
    AgentResponseRequest,
    CaseCreateRequest,
    CaseEnvelope,
    CaseInfo,
    CaseListResponse,
    CaseSummary,
    CaseThreadResponse,
    CaseUpdateRequest,
    ThreadMessage,
)
from casedesk.cases.application.services import (
    CaseService,
    IAgentLockStore,
    ICaseIndexer,
    ICaseRepository,
)

__all__ = [
    # DTOs
    "AgentOnlyRequest",
    "AgentOnlyResponse",
    "AgentResponseRequest",
    "CaseCreateRequest",
    "CaseEnvelope",
    "CaseInfo",
    "CaseListResponse",
    "CaseSummary",
    "CaseThreadResponse",
    "CaseUpdateRequest",
    "ThreadMessage",
    # Services
    "CaseService",
    # Interfaces
    "IAgentLockStore",
    "ICaseIndexer",
    "ICaseRepository",
]
