"""
Triage Domain Layer
===================

Pure Python business logic for triage: matching entities, similarity
ranking, case-memory reply synthesis and the generative prompt.
"""

from casedesk.triage.domain.entities import (
    FALLBACK_REPLY,
    REFUND_DESCRIPTION_TAG,
    REFUND_KEYWORDS,
    REFUND_REPLY,
    CaseMemoryRecord,
    ChatTurn,
    FaqEntry,
    FaqMatch,
    ReplyPromptBuilder,
    SelectedProduct,
    SimilarCase,
    TriageReply,
    is_refund_request,
)
from casedesk.triage.domain.memory_reply import (
    build_memory_reply,
    clean_transcript,
    pick_resolution_summary,
)
from casedesk.triage.domain.similarity import cosine_similarity, rank_by_similarity, top_k

__all__ = [
    "FALLBACK_REPLY",
    "REFUND_DESCRIPTION_TAG",
    "REFUND_KEYWORDS",
    "REFUND_REPLY",
    "CaseMemoryRecord",
    "ChatTurn",
    "FaqEntry",
    "FaqMatch",
    "ReplyPromptBuilder",
    "SelectedProduct",
    "SimilarCase",
    "TriageReply",
    "is_refund_request",
    "build_memory_reply",
    "clean_transcript",
    "pick_resolution_summary",
    "cosine_similarity",
    "rank_by_similarity",
    "top_k",
]
