"""
Cases Module
============

Bounded Context for support cases.

Responsibilities:
- One case per (user, order, product) with an open/in-progress/resolved lifecycle
- Agent replies, status changes and the agent-only lock
- Resolution summaries handed to case memory
"""
