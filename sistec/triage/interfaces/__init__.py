"""
Triage Interfaces Layer
=======================

Contains:
- Controllers: AI connectivity check
"""

from sistec.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
