"""
Triage Module
=============

Bounded Context for answering inbound customer messages.

Responsibilities:
- Route each message through the agent-only lock, refund detection,
  FAQ matching, case memory and the generative fallback
- Keep the per-product chat log and the user's selected product
- Fan replies out to the user and the agent dashboard

Endpoints:
- POST/DELETE /triage/select-product
- POST /triage/chat, GET /triage/chat/history, GET /triage/chat/thread
- POST /triage/faqs, GET /triage/stats
- GET /events/stream (server-sent events)
"""

__version__ = "1.0.0"
