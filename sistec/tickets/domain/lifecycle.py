"""
Ticket Lifecycle Rules
======================

The transition graph of a ticket and the rules attached to each edge.

Statuses form a closed enumeration; ``TRANSITIONS`` lists every legal
edge, and ``STAMPED_COLUMNS`` says which ticket columns a move into each
status writes.
"""

from typing import Dict, FrozenSet, Iterable, Tuple

from sistec.core import InvalidTransitionException, ValidationException
from sistec.tickets.domain.value_objects import TicketStatus

S = TicketStatus

TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    S.ABERTO: frozenset({S.APROVADO, S.REJEITADO}),
    S.APROVADO: frozenset({S.TRIAGEM_IA}),
    S.REJEITADO: frozenset(),
    S.TRIAGEM_IA: frozenset({S.AGUARDANDO_RESPOSTA, S.COM_ANALISTA}),
    S.AGUARDANDO_RESPOSTA: frozenset({S.RESOLVIDO, S.COM_ANALISTA}),
    S.COM_ANALISTA: frozenset({S.RESOLVIDO, S.ESCALADO}),
    S.ESCALADO: frozenset({S.RESOLVIDO}),
    S.RESOLVIDO: frozenset({S.FECHADO}),
    S.FECHADO: frozenset(),
}

INITIAL_STATUS = S.ABERTO

# Columns written when a ticket enters each status. Statuses missing here
# (Aguardando Resposta) only append history.
STAMPED_COLUMNS: Dict[TicketStatus, Tuple[str, ...]] = {
    S.APROVADO: ("approved_rejected_at",),
    S.REJEITADO: ("approved_rejected_at",),
    S.TRIAGEM_IA: ("forwarded_at",),
    S.COM_ANALISTA: ("forwarded_at",),
    S.ESCALADO: ("escalated_at",),
    S.RESOLVIDO: ("resolved_at", "resolver_id"),
    S.FECHADO: ("closed_at",),
}

MIN_REASON_LENGTH = 10


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """Check whether ``current -> target`` is an edge of the graph."""
    return target in TRANSITIONS[current]


def ensure_transition(ticket_id: int, current: TicketStatus, target: TicketStatus) -> None:
    """
    Raise InvalidTransitionException unless ``current -> target`` is legal.
    """
    if not can_transition(current, target):
        raise InvalidTransitionException(ticket_id, current.value, target.value)


def is_valid_walk(statuses: Iterable[TicketStatus]) -> bool:
    """
    Check that a status history starts at Aberto and only follows edges
    of the graph.
    """
    history = list(statuses)
    if not history or history[0] != INITIAL_STATUS:
        return False
    return all(can_transition(a, b) for a, b in zip(history, history[1:]))


def validate_reason(reason: str, field: str = "motivo") -> str:
    """
    Require at least MIN_REASON_LENGTH characters once surrounding
    whitespace is trimmed.

    Returns:
        The trimmed reason
    """
    trimmed = (reason or "").strip()
    if len(trimmed) < MIN_REASON_LENGTH:
        raise ValidationException(
            f"O {field} deve ter pelo menos {MIN_REASON_LENGTH} caracteres",
            {"field": field, "min_length": MIN_REASON_LENGTH},
        )
    return trimmed
