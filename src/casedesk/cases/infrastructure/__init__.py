"""
Case Infrastructure Layer
==========================

- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Redis agent-only lock
"""

from casedesk.cases.infrastructure.external import RedisAgentLockStore, agent_only_key
from casedesk.cases.infrastructure.models import CaseModel, CaseResponseModel
from casedesk.cases.infrastructure.repositories import SQLAlchemyCaseRepository

__all__ = [
    "RedisAgentLockStore",
    "agent_only_key",
    "CaseModel",
    "CaseResponseModel",
    "SQLAlchemyCaseRepository",
]
