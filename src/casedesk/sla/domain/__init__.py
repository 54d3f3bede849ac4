"""
SLA Domain Layer
================

Domain layer for the SLA module.

Contains:
- Sentiment classifier: lexical tone scoring
- Value Objects: SLATarget, TriageConfig
- Domain Services: Stateless business logic (SLACalculator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from casedesk.sla.domain.sentiment import SentimentResult, analyze
from casedesk.sla.domain.value_objects import (
    DEFAULT_SLA_TARGETS,
    SLACalculator,
    SLATarget,
    TriageConfig,
    compute_sla,
)

__all__ = [
    "SentimentResult",
    "analyze",
    "DEFAULT_SLA_TARGETS",
    "SLACalculator",
    "SLATarget",
    "TriageConfig",
    "compute_sla",
]
