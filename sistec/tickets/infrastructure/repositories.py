"""
Tickets Infrastructure Repositories
===================================

SQLAlchemy implementations of the ticket, user and resolution report
repositories. Repositories only flush; the session owner commits.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sistec.tickets.application import (
    ITicketRepository,
    IResolutionReportRepository,
    IUserRepository,
)
from sistec.tickets.domain import AIResponseType, FeedbackValue, TicketStatus
from sistec.tickets.infrastructure.models import (
    AIResponseModel,
    ResolutionReportModel,
    TicketModel,
    TicketStatusHistoryModel,
    UserModel,
)


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of the ticket repository.

    Also covers the status history and AI response tables, which never
    exist apart from their ticket.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: int, for_update: bool = False) -> Optional[TicketModel]:
        """Get ticket by ID. ``for_update`` takes a row lock (ignored by SQLite)."""
        stmt = select(TicketModel).where(TicketModel.id == ticket_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, values: Dict[str, Any]) -> TicketModel:
        model = TicketModel(**values)
        self._session.add(model)
        await self._session.flush()
        return model

    async def list(self, filters: dict, limit: int = 100, offset: int = 0) -> List[TicketModel]:
        """List tickets with filters (``status``, ``opened_by_id``), newest first."""
        stmt = select(TicketModel)

        conditions = []
        if "status" in filters:
            statuses = filters["status"]
            if isinstance(statuses, (list, tuple, set, frozenset)):
                conditions.append(TicketModel.status.in_(list(statuses)))
            else:
                conditions.append(TicketModel.status == statuses)

        if "opened_by_id" in filters:
            conditions.append(TicketModel.opened_by_id == filters["opened_by_id"])

        if conditions:
            stmt = stmt.where(*conditions)

        stmt = stmt.order_by(TicketModel.opened_at.desc(), TicketModel.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def recent_for_user(self, user_id: int, exclude_ticket_id: int, limit: int) -> List[TicketModel]:
        stmt = (
            select(TicketModel)
            .where(TicketModel.opened_by_id == user_id, TicketModel.id != exclude_ticket_id)
            .order_by(TicketModel.opened_at.desc(), TicketModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def user_name(self, user_id: int) -> Optional[str]:
        result = await self._session.execute(select(UserModel.name).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    async def ids_with_status(self, statuses: Sequence[TicketStatus]) -> List[int]:
        stmt = (
            select(TicketModel.id)
            .where(TicketModel.status.in_(list(statuses)))
            .order_by(TicketModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def append_status(
        self,
        ticket_id: int,
        status: TicketStatus,
        actor_id: Optional[int]
    ) -> TicketStatusHistoryModel:
        row = TicketStatusHistoryModel(ticket_id=ticket_id, status=status, changed_by_id=actor_id)
        self._session.add(row)
        await self._session.flush()
        return row

    async def swap_status(
        self,
        ticket_id: int,
        expected: TicketStatus,
        new: TicketStatus,
        values: Dict[str, Any]
    ) -> bool:
        """Compare-and-swap on the status column. Returns False if no row matched."""
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_id, TicketModel.status == expected)
            .values(status=new, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def refresh(self, ticket: TicketModel) -> None:
        await self._session.refresh(ticket)

    async def status_history(self, ticket_id: int) -> List[TicketStatusHistoryModel]:
        stmt = (
            select(TicketStatusHistoryModel)
            .where(TicketStatusHistoryModel.ticket_id == ticket_id)
            .order_by(TicketStatusHistoryModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add_ai_response(
        self,
        ticket_id: int,
        response_type: AIResponseType,
        text: Optional[str] = None,
        triage_verdict: Optional[dict] = None
    ) -> AIResponseModel:
        model = AIResponseModel(
            ticket_id=ticket_id,
            response_type=response_type,
            text=text,
            triage_verdict=triage_verdict,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    async def latest_ai_response(
        self,
        ticket_id: int,
        response_type: AIResponseType
    ) -> Optional[AIResponseModel]:
        stmt = (
            select(AIResponseModel)
            .where(
                AIResponseModel.ticket_id == ticket_id,
                AIResponseModel.response_type == response_type,
            )
            .order_by(AIResponseModel.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def ai_responses(self, ticket_id: int) -> List[AIResponseModel]:
        stmt = (
            select(AIResponseModel)
            .where(AIResponseModel.ticket_id == ticket_id)
            .order_by(AIResponseModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def record_feedback(self, response_id: int, feedback: FeedbackValue, at: datetime) -> None:
        stmt = (
            update(AIResponseModel)
            .where(AIResponseModel.id == response_id)
            .values(feedback=feedback, feedback_at=at)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)


class SQLAlchemyResolutionReportRepository(IResolutionReportRepository):
    """SQLAlchemy implementation for resolution reports."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_ticket(self, ticket_id: int) -> Optional[ResolutionReportModel]:
        stmt = select(ResolutionReportModel).where(ResolutionReportModel.ticket_id == ticket_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, values: Dict[str, Any]) -> ResolutionReportModel:
        model = ResolutionReportModel(**values)
        self._session.add(model)
        await self._session.flush()
        return model


class SQLAlchemyUserRepository(IUserRepository):
    """Read-only user lookups."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        """Case-insensitive on both sides; rows may be written by other tools."""
        stmt = select(UserModel).where(func.lower(UserModel.email) == email.strip().lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
