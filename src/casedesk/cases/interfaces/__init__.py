"""
Case Interfaces Layer
=====================

API controllers for the cases module.
"""

from casedesk.cases.interfaces.controllers import (
    get_case_memory_service,
    get_case_service,
    router as cases_router,
)

__all__ = ["cases_router", "get_case_memory_service", "get_case_service"]
