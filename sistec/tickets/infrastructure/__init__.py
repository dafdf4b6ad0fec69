"""
Tickets Infrastructure Layer
============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: data access implementations
"""

from sistec.tickets.infrastructure.models import (
    UserModel,
    TicketModel,
    TicketStatusHistoryModel,
    AIResponseModel,
    ResolutionReportModel,
)
from sistec.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyResolutionReportRepository,
    SQLAlchemyUserRepository,
)

__all__ = [
    "UserModel",
    "TicketModel",
    "TicketStatusHistoryModel",
    "AIResponseModel",
    "ResolutionReportModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyResolutionReportRepository",
    "SQLAlchemyUserRepository",
]
