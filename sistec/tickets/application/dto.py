"""
Tickets Application DTOs
========================

Data Transfer Objects for the tickets API layer.

Field names follow the help desk's public (Portuguese) API.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from sistec.tickets.domain import FeedbackValue, priority_label


# ========== Request DTOs ==========

class CreateTicketRequest(BaseModel):
    """Request model for opening a ticket."""
    categoria: str = Field(..., min_length=1, max_length=100, description="Ticket category")
    problema: str = Field(..., min_length=1, max_length=150, description="Problem type")
    descricao_detalhada: str = Field(..., min_length=1, description="Free-text description")
    prioridade: Optional[str] = Field(
        default=None,
        description="Priority label (baixa, media, alta, urgente); anything else means media"
    )

    @field_validator("categoria", "problema", "descricao_detalhada")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class ReasonRequest(BaseModel):
    """Body of reject and escalate. Length is checked by the service."""
    motivo: str = Field(..., description="Reason, at least 10 characters once trimmed")


class FeedbackRequest(BaseModel):
    """Ticket owner's feedback on the AI solution."""
    feedback: FeedbackValue


class ResolutionReportRequest(BaseModel):
    """Analyst's write-up of a resolved ticket."""
    id_chamado: int = Field(..., ge=1)
    relatorio_resposta: str = Field(..., min_length=1)

    @field_validator("relatorio_resposta")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


# ========== Response DTOs ==========

class TicketDTO(BaseModel):
    """Ticket as returned by the API."""
    id_chamado: int
    titulo: str
    categoria: str
    problema: str
    descricao_detalhada: str
    prioridade: int
    prioridade_texto: str
    status: str
    id_usuario_abertura: int
    data_abertura: datetime
    data_aprovacao_recusa: Optional[datetime] = None
    motivo_rejeicao: Optional[str] = None
    data_encaminhamento: Optional[datetime] = None
    data_escalonamento: Optional[datetime] = None
    data_resolucao: Optional[datetime] = None
    id_usuario_resolucao: Optional[int] = None
    data_fechamento: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Any) -> "TicketDTO":
        return cls(
            id_chamado=model.id,
            titulo=model.title,
            categoria=model.category,
            problema=model.problem,
            descricao_detalhada=model.description,
            prioridade=model.priority,
            prioridade_texto=priority_label(model.priority),
            status=model.status.value,
            id_usuario_abertura=model.opened_by_id,
            data_abertura=model.opened_at,
            data_aprovacao_recusa=model.approved_rejected_at,
            motivo_rejeicao=model.rejection_reason,
            data_encaminhamento=model.forwarded_at,
            data_escalonamento=model.escalated_at,
            data_resolucao=model.resolved_at,
            id_usuario_resolucao=model.resolver_id,
            data_fechamento=model.closed_at,
        )


class StatusHistoryEntryDTO(BaseModel):
    """One row of a ticket's status history."""
    status: str
    id_usuario: Optional[int] = None
    data: datetime

    @classmethod
    def from_model(cls, model: Any) -> "StatusHistoryEntryDTO":
        return cls(status=model.status.value, id_usuario=model.changed_by_id, data=model.created_at)


class AIResponseDTO(BaseModel):
    """AI response record (solution or audit note)."""
    id_resposta: int
    id_chamado: int
    tipo_resposta: str
    analise_triagem: Optional[dict] = None
    solucao_ia: Optional[str] = None
    feedback_usuario: Optional[str] = None
    data_feedback: Optional[datetime] = None
    data_resposta: datetime

    @classmethod
    def from_model(cls, model: Any) -> "AIResponseDTO":
        return cls(
            id_resposta=model.id,
            id_chamado=model.ticket_id,
            tipo_resposta=model.response_type.value,
            analise_triagem=model.triage_verdict,
            solucao_ia=model.text,
            feedback_usuario=model.feedback.value if model.feedback else None,
            data_feedback=model.feedback_at,
            data_resposta=model.created_at,
        )


class ResolutionReportDTO(BaseModel):
    """Stored resolution report."""
    id_relatorio: int
    id_chamado: int
    id_usuario_abertura: int
    id_usuario_resolucao: int
    categoria: str
    problema: str
    relatorio_resposta: str
    data_relatorio: datetime

    @classmethod
    def from_model(cls, model: Any) -> "ResolutionReportDTO":
        return cls(
            id_relatorio=model.id,
            id_chamado=model.ticket_id,
            id_usuario_abertura=model.opened_by_id,
            id_usuario_resolucao=model.resolved_by_id,
            categoria=model.category,
            problema=model.problem,
            relatorio_resposta=model.report,
            data_relatorio=model.created_at,
        )
