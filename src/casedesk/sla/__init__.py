"""
SLA Module
==========

Bounded Context for sentiment scoring and response-time targets.

Responsibilities:
- Score the tone of inbound messages (angry / neutral / cool)
- Map priority and sentiment to an SLA tier and target minutes
- Hold the hot-reloadable triage tunables (thresholds, TTLs, SLA minutes)
"""

__version__ = "1.0.0"
