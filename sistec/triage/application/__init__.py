"""
Triage Application Layer
========================

Contains:
- ClassificationService and ResolutionService: the two AI calls
- TriageOrchestrator: drives an approved ticket to a terminal triage status
- ConnectionCheckService: AI connectivity check
"""

from sistec.triage.application.services import (
    PENDING_TRIAGE_STATUSES,
    ClassificationService,
    ResolutionService,
    TriageOrchestrator,
    ConnectionCheckService,
)

__all__ = [
    "PENDING_TRIAGE_STATUSES",
    "ClassificationService",
    "ResolutionService",
    "TriageOrchestrator",
    "ConnectionCheckService",
]
