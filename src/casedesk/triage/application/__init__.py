"""
Triage Application Layer
=========================

Application layer for message triage.

Contains:
- Pipeline: stage ordering for one inbound message
- Services: FAQ matching, case memory and generative replies
- DTOs: Data transfer objects for API serialization
"""

from casedesk.triage.application.dto import (
    ChatHistoryResponse,
    ChatReplyResponse,
    ChatRequest,
    ChatTurnInfo,
    FaqSeedItem,
    FaqSeedRequest,
    FaqSeedResponse,
    SelectedProductInfo,
    SelectProductRequest,
    SelectProductResponse,
    SimilarCaseInfo,
    StatsResponse,
    ThreadEntry,
    UnifiedThreadResponse,
)
from casedesk.triage.application.pipeline import TriagePipeline
from casedesk.triage.application.services import (
    CaseMemoryService,
    FaqMatcher,
    GenerativeReplyService,
    ICaseMemoryRepository,
    IChatLogStore,
    IEmbeddingProvider,
    IFaqRepository,
    ISessionStore,
)

__all__ = [
    # DTOs
    "ChatHistoryResponse",
    "ChatReplyResponse",
    "ChatRequest",
    "ChatTurnInfo",
    "FaqSeedItem",
    "FaqSeedRequest",
    "FaqSeedResponse",
    "SelectedProductInfo",
    "SelectProductRequest",
    "SelectProductResponse",
    "SimilarCaseInfo",
    "StatsResponse",
    "ThreadEntry",
    "UnifiedThreadResponse",
    # Pipeline and services
    "TriagePipeline",
    "CaseMemoryService",
    "FaqMatcher",
    "GenerativeReplyService",
    # Interfaces
    "ICaseMemoryRepository",
    "IChatLogStore",
    "IEmbeddingProvider",
    "IFaqRepository",
    "ISessionStore",
]
