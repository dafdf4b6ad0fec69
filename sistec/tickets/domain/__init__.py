"""
Tickets Domain Layer
====================

Framework-agnostic rules of the ticket lifecycle.

Contains:
- Value objects: statuses, AI response kinds, feedback values, access
  levels and the priority helpers
- Lifecycle: the transition graph and per-status stamped columns
- Text: title extraction and length bounding
"""

from sistec.tickets.domain.value_objects import (
    TicketStatus,
    AIResponseType,
    FeedbackValue,
    AccessLevel,
    priority_to_number,
    priority_label,
    is_valid_priority,
    available_priorities,
)
from sistec.tickets.domain.lifecycle import (
    TRANSITIONS,
    STAMPED_COLUMNS,
    INITIAL_STATUS,
    MIN_REASON_LENGTH,
    can_transition,
    ensure_transition,
    is_valid_walk,
    validate_reason,
)
from sistec.tickets.domain.text import extract_title, truncate_text

__all__ = [
    "TicketStatus",
    "AIResponseType",
    "FeedbackValue",
    "AccessLevel",
    "priority_to_number",
    "priority_label",
    "is_valid_priority",
    "available_priorities",
    "TRANSITIONS",
    "STAMPED_COLUMNS",
    "INITIAL_STATUS",
    "MIN_REASON_LENGTH",
    "can_transition",
    "ensure_transition",
    "is_valid_walk",
    "validate_reason",
    "extract_title",
    "truncate_text",
]
