"""
Tickets Controllers (API Routes)
================================

FastAPI routes for the ticket lifecycle under ``/chamados``.

Controllers check access level and ownership, then delegate to the
lifecycle service. Every response uses the ``{status, message, data}``
envelope.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from sistec.shared.api import ApiResponse, envelope
from sistec.tickets.application import (
    AIResponseDTO,
    CreateTicketRequest,
    FeedbackRequest,
    ReasonRequest,
    ResolutionReportDTO,
    ResolutionReportRequest,
    StatusHistoryEntryDTO,
    TicketDTO,
    TicketLifecycleService,
)
from sistec.tickets.domain import AccessLevel, TicketStatus
from sistec.tickets.interfaces.dependencies import (
    CurrentUser,
    ensure_can_view,
    ensure_owner,
    get_current_user,
    get_lifecycle_service,
    require_level,
)
from sistec.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/chamados", tags=["Chamados"])


def _ticket_list(tickets) -> List[dict]:
    return [TicketDTO.from_model(t).model_dump() for t in tickets]


# ========== Collection routes ==========

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[TicketDTO],
    summary="Open a ticket",
)
async def create_ticket(
    payload: CreateTicketRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.create(
        opened_by_id=user.id,
        category=payload.categoria,
        problem=payload.problema,
        description=payload.descricao_detalhada,
        priority=payload.prioridade,
    )
    return envelope(201, "Chamado criado com sucesso", TicketDTO.from_model(ticket))


@router.get("", response_model=ApiResponse[List[TicketDTO]], summary="List tickets")
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    """Level-1 users only see the tickets they opened."""
    filters: dict = {}
    if status_filter is not None:
        filters["status"] = status_filter
    if user.access_level <= AccessLevel.USUARIO:
        filters["opened_by_id"] = user.id

    tickets = await service.list(filters, limit=limit, offset=offset)
    return envelope(200, "Chamados encontrados", _ticket_list(tickets))


@router.get("/aprovacao", response_model=ApiResponse[List[TicketDTO]], summary="Approval queue")
async def list_pending_approval(
    user: CurrentUser = Depends(require_level(AccessLevel.GESTOR_CHAMADOS)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    tickets = await service.list_by_status(TicketStatus.ABERTO)
    return envelope(200, "Chamados aguardando aprovação", _ticket_list(tickets))


@router.get("/com-analista", response_model=ApiResponse[List[TicketDTO]], summary="Analyst queue")
async def list_with_analyst(
    user: CurrentUser = Depends(require_level(AccessLevel.ANALISTA)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    tickets = await service.list_by_status(TicketStatus.COM_ANALISTA)
    return envelope(200, "Chamados com analista", _ticket_list(tickets))


@router.get("/escalados", response_model=ApiResponse[List[TicketDTO]], summary="Escalated queue")
async def list_escalated(
    user: CurrentUser = Depends(require_level(AccessLevel.GERENTE)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    tickets = await service.list_by_status(TicketStatus.ESCALADO)
    return envelope(200, "Chamados escalados", _ticket_list(tickets))


@router.post(
    "/resolver-com-relatorio",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ResolutionReportDTO],
    summary="Store a resolution report",
)
async def submit_resolution_report(
    payload: ResolutionReportRequest,
    user: CurrentUser = Depends(require_level(AccessLevel.ANALISTA)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    """Persists the analyst's write-up. Does not change the ticket status."""
    report = await service.submit_resolution_report(
        payload.id_chamado, user.id, payload.relatorio_resposta
    )
    return envelope(201, "Relatório de resolução salvo", ResolutionReportDTO.from_model(report))


# ========== Single ticket routes ==========

@router.get("/{ticket_id}", response_model=ApiResponse[TicketDTO], summary="Get a ticket")
async def get_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.get(ticket_id)
    ensure_can_view(user, ticket)
    return envelope(200, "Chamado encontrado", TicketDTO.from_model(ticket))


@router.get(
    "/{ticket_id}/historico",
    response_model=ApiResponse[List[StatusHistoryEntryDTO]],
    summary="Status history of a ticket",
)
async def get_status_history(
    ticket_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.get(ticket_id)
    ensure_can_view(user, ticket)
    history = await service.status_history(ticket_id)
    return envelope(
        200,
        "Histórico do chamado",
        [StatusHistoryEntryDTO.from_model(row) for row in history],
    )


@router.post("/{ticket_id}/aprovar", response_model=ApiResponse[TicketDTO], summary="Approve a ticket")
async def approve_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(require_level(AccessLevel.GESTOR_CHAMADOS)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    """Aberto -> Aprovado. Triage runs afterwards, out of band."""
    ticket = await service.approve(ticket_id, user.id)
    return envelope(200, "Chamado aprovado e enviado para triagem", TicketDTO.from_model(ticket))


@router.post("/{ticket_id}/rejeitar", response_model=ApiResponse[TicketDTO], summary="Reject a ticket")
async def reject_ticket(
    ticket_id: int,
    payload: ReasonRequest,
    user: CurrentUser = Depends(require_level(AccessLevel.GESTOR_CHAMADOS)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.reject(ticket_id, payload.motivo, user.id)
    return envelope(200, "Chamado rejeitado", TicketDTO.from_model(ticket))


@router.get(
    "/{ticket_id}/solucao-ia",
    response_model=ApiResponse[AIResponseDTO],
    summary="Latest AI solution of a ticket",
)
async def get_ai_solution(
    ticket_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.get(ticket_id)
    if user.access_level < AccessLevel.ANALISTA:
        ensure_owner(user, ticket)
    solution = await service.latest_solution(ticket_id)
    return envelope(200, "Solução IA encontrada", AIResponseDTO.from_model(solution))


@router.post(
    "/{ticket_id}/feedback-ia",
    response_model=ApiResponse[TicketDTO],
    summary="Owner feedback on the AI solution",
)
async def submit_ai_feedback(
    ticket_id: int,
    payload: FeedbackRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.get(ticket_id)
    ensure_owner(user, ticket)
    ticket = await service.submit_feedback(ticket_id, user.id, payload.feedback)
    message = (
        "Chamado resolvido pela solução IA"
        if ticket.status == TicketStatus.RESOLVIDO
        else "Chamado encaminhado para analista"
    )
    return envelope(200, message, TicketDTO.from_model(ticket))


@router.post("/{ticket_id}/resolver", response_model=ApiResponse[TicketDTO], summary="Resolve a ticket")
async def resolve_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(require_level(AccessLevel.ANALISTA)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    """Com Analista -> Resolvido."""
    ticket = await service.resolve(ticket_id, user.id)
    return envelope(200, "Chamado resolvido", TicketDTO.from_model(ticket))


@router.post("/{ticket_id}/escalar", response_model=ApiResponse[TicketDTO], summary="Escalate a ticket")
async def escalate_ticket(
    ticket_id: int,
    payload: ReasonRequest,
    user: CurrentUser = Depends(require_level(AccessLevel.ANALISTA)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.escalate(ticket_id, user.id, payload.motivo)
    return envelope(200, "Chamado escalado", TicketDTO.from_model(ticket))


@router.post(
    "/{ticket_id}/resolver-escalado",
    response_model=ApiResponse[TicketDTO],
    summary="Resolve an escalated ticket",
)
async def resolve_escalated_ticket(
    ticket_id: int,
    user: CurrentUser = Depends(require_level(AccessLevel.GESTOR_CHAMADOS)),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    """Escalado -> Resolvido."""
    ticket = await service.resolve_escalated(ticket_id, user.id)
    return envelope(200, "Chamado escalado resolvido", TicketDTO.from_model(ticket))


tickets_router = router
