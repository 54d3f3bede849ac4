"""
Triage Interfaces Layer
=======================

API controllers for the triage module and the live event stream.
"""

from casedesk.triage.interfaces.controllers import (
    case_thread_router,
    router as triage_router,
)
from casedesk.triage.interfaces.events import router as events_router

__all__ = ["case_thread_router", "events_router", "triage_router"]
