"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the SLA module:
- External: YAML config loading with watchdog hot-reload
"""

from casedesk.sla.infrastructure.external import TriageConfigManager

__all__ = ["TriageConfigManager"]
