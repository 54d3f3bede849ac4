"""
Case Domain Layer
=================

Pure Python case lifecycle: the Case entity, its allowed status
transitions, the priority classifier and resolution summaries.
"""

from casedesk.cases.domain.entities import (
    ALLOWED_TRANSITIONS,
    CLOSING_NOTE,
    Case,
    CaseResponse,
    build_resolution_summary,
    classify_priority,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "CLOSING_NOTE",
    "Case",
    "CaseResponse",
    "build_resolution_summary",
    "classify_priority",
]
