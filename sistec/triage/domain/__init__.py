"""
Triage Domain Layer
===================

Contains:
- Entities: TriageVerdict, TriageContext, outcomes and recommendations
- Prompt builders for classification and resolution

This layer is framework-agnostic and contains pure business logic.
"""

from sistec.triage.domain.entities import (
    GENERATION_MAX_CHARS,
    PERSISTENCE_MAX_CHARS,
    FALLBACK_JUSTIFICATION,
    CONNECTION_TEST_PROMPT,
    Recommendation,
    TriageOutcome,
    TriageVerdict,
    TriageContext,
    TriagePromptBuilder,
    ResolutionPromptBuilder,
    extract_verdict,
)

__all__ = [
    "GENERATION_MAX_CHARS",
    "PERSISTENCE_MAX_CHARS",
    "FALLBACK_JUSTIFICATION",
    "CONNECTION_TEST_PROMPT",
    "Recommendation",
    "TriageOutcome",
    "TriageVerdict",
    "TriageContext",
    "TriagePromptBuilder",
    "ResolutionPromptBuilder",
    "extract_verdict",
]
