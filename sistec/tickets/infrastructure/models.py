"""
Tickets Infrastructure Models
=============================

SQLAlchemy ORM models for the tickets module.

The ticket row carries its current status as a column; ``status_chamado``
keeps the append-only history of every status the ticket went through.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from sistec.infrastructure.database import Base
from sistec.tickets.domain import AIResponseType, FeedbackValue, TicketStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls, length: int) -> SQLEnum:
    """Store enum values (not member names) as plain strings."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class UserModel(Base):
    """
    Help-desk user as seen by the ticket module.

    Account management lives elsewhere; this table is only read to
    resolve the acting user and their access level.
    """
    __tablename__ = "usuarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    access_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class TicketModel(Base):
    """
    Database model for a help-desk ticket ("chamado").

    Timestamp columns are written only by lifecycle transitions.
    """
    __tablename__ = "chamados"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    opened_by_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("usuarios.id"), nullable=False, index=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    problem: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[TicketStatus] = mapped_column(
        _enum_column(TicketStatus, 30), nullable=False, index=True
    )

    # Lifecycle timestamps
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    approved_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    forwarded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    escalated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    resolver_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("usuarios.id"))
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class TicketStatusHistoryModel(Base):
    """Append-only status history. Rows are never updated or deleted."""
    __tablename__ = "status_chamado"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chamados.id"), nullable=False, index=True
    )
    status: Mapped[TicketStatus] = mapped_column(_enum_column(TicketStatus, 30), nullable=False)
    changed_by_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("usuarios.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class AIResponseModel(Base):
    """
    One AI interaction or lifecycle audit note for a ticket.

    Only the feedback columns are ever updated, once, by the ticket owner.
    """
    __tablename__ = "respostas_ia"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chamados.id"), nullable=False, index=True
    )
    response_type: Mapped[AIResponseType] = mapped_column(
        _enum_column(AIResponseType, 30), nullable=False
    )
    triage_verdict: Mapped[Optional[dict]] = mapped_column(JSON)
    text: Mapped[Optional[str]] = mapped_column(Text)
    feedback: Mapped[Optional[FeedbackValue]] = mapped_column(_enum_column(FeedbackValue, 20))
    feedback_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class ResolutionReportModel(Base):
    """Analyst's write-up of how a ticket was solved. One per ticket."""
    __tablename__ = "relatorios_resolucao"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chamados.id"), nullable=False, unique=True
    )
    opened_by_id: Mapped[int] = mapped_column(Integer, ForeignKey("usuarios.id"), nullable=False)
    resolved_by_id: Mapped[int] = mapped_column(Integer, ForeignKey("usuarios.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    problem: Mapped[str] = mapped_column(String(150), nullable=False)
    report: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
