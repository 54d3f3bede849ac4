"""
Shared Kernel Module
====================

This module contains shared infrastructure and API elements used across
all bounded contexts (SLA, Cases and Triage).

Architecture Pattern: Modular Monolith
- Each module (sla, cases, triage) is a bounded context
- Shared kernel contains only generic infrastructure
- Domain models live within each module

DO NOT add business logic from SLA, Cases or Triage to shared kernel.
"""

__version__ = "1.0.0"
