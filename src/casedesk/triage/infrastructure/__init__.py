"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the triage module.

Contains:
- Models: SQLAlchemy ORM models (FAQ corpus, case memory)
- Repositories: Data access implementations
- External: Embedding adapter and Redis stores (chat log, session)
"""

from casedesk.triage.infrastructure.external import (
    EmbeddingAdapter,
    RedisChatLogStore,
    RedisSessionStore,
    chat_log_key,
    selected_product_key,
)
from casedesk.triage.infrastructure.models import CaseMemoryModel, FaqModel
from casedesk.triage.infrastructure.repositories import (
    SQLAlchemyCaseMemoryRepository,
    SQLAlchemyFaqRepository,
)

__all__ = [
    "EmbeddingAdapter",
    "RedisChatLogStore",
    "RedisSessionStore",
    "chat_log_key",
    "selected_product_key",
    "CaseMemoryModel",
    "FaqModel",
    "SQLAlchemyCaseMemoryRepository",
    "SQLAlchemyFaqRepository",
]
