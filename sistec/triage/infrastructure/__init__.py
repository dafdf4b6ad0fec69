"""
Triage Infrastructure Layer
===========================

Contains:
- TriageScheduler: APScheduler-backed triage dispatcher
"""

from sistec.triage.infrastructure.scheduler import TriageScheduler

__all__ = ["TriageScheduler"]
