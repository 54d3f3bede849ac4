"""
SLA Application Layer
======================

Contains:
- Services: sentiment and SLA computation against the live configuration
- DTOs: Data transfer objects for API serialization
"""

from casedesk.sla.application.dto import (
    SentimentRequest,
    SentimentResponse,
    SLAComputeRequest,
    SLAResponse,
)
from casedesk.sla.application.services import (
    ITriageConfigProvider,
    SLAService,
    StaticConfigProvider,
)

__all__ = [
    # DTOs
    "SentimentRequest",
    "SentimentResponse",
    "SLAComputeRequest",
    "SLAResponse",
    # Services
    "SLAService",
    # Config Interfaces
    "ITriageConfigProvider",
    "StaticConfigProvider",
]
