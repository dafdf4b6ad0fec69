"""
Tickets Application Layer
=========================

Contains:
- Services: the Ticket Lifecycle Manager
- DTOs: request/response models for the API
- Repository and dispatcher interfaces
"""

from sistec.tickets.application.dto import (
    CreateTicketRequest,
    ReasonRequest,
    FeedbackRequest,
    ResolutionReportRequest,
    TicketDTO,
    StatusHistoryEntryDTO,
    AIResponseDTO,
    ResolutionReportDTO,
)
from sistec.tickets.application.services import (
    TicketLifecycleService,
    ITicketRepository,
    IResolutionReportRepository,
    IUserRepository,
    ITriageDispatcher,
    SessionScope,
)

__all__ = [
    # DTOs
    "CreateTicketRequest",
    "ReasonRequest",
    "FeedbackRequest",
    "ResolutionReportRequest",
    "TicketDTO",
    "StatusHistoryEntryDTO",
    "AIResponseDTO",
    "ResolutionReportDTO",
    # Services
    "TicketLifecycleService",
    # Interfaces
    "ITicketRepository",
    "IResolutionReportRepository",
    "IUserRepository",
    "ITriageDispatcher",
    "SessionScope",
]
