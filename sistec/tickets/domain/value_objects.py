"""
Ticket Value Objects
====================

Closed enumerations and pure helpers for the ticket domain.

Status values, AI response kinds, feedback values and access levels are
stored with the same Portuguese labels the help desk shows to its users.
"""

from enum import Enum, IntEnum
from typing import Any, Dict, List


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    ABERTO = "Aberto"
    APROVADO = "Aprovado"
    REJEITADO = "Rejeitado"
    TRIAGEM_IA = "Triagem IA"
    AGUARDANDO_RESPOSTA = "Aguardando Resposta"
    COM_ANALISTA = "Com Analista"
    ESCALADO = "Escalado"
    RESOLVIDO = "Resolvido"
    FECHADO = "Fechado"


class AIResponseType(str, Enum):
    """Kinds of AI response records attached to a ticket."""
    SOLUCAO = "SOLUCAO"                          # AI generated solution
    REPROVACAO = "REPROVACAO"                    # rejection note
    ESCALONAMENTO = "ESCALONAMENTO"              # escalation note
    ANALISTA_RESOLUCAO = "ANALISTA_RESOLUCAO"    # manual resolution note


class FeedbackValue(str, Enum):
    """Ticket owner's verdict on an AI solution."""
    DEU_CERTO = "DEU_CERTO"
    DEU_ERRADO = "DEU_ERRADO"


class AccessLevel(IntEnum):
    """User access levels, ordered by privilege."""
    USUARIO = 1
    ANALISTA = 2
    GESTOR_CHAMADOS = 3
    GERENTE = 4
    ADMIN = 5


# ========== Priority ==========

PRIORITY_BY_LABEL: Dict[str, int] = {
    "baixa": 1,
    "media": 2,
    "alta": 3,
    "urgente": 4,
}

PRIORITY_TEXT: Dict[int, str] = {
    1: "Baixa",
    2: "Média",
    3: "Alta",
    4: "Urgente",
}

DEFAULT_PRIORITY = 2
UNDEFINED_PRIORITY_TEXT = "Não definida"
PRIORITY_MIN, PRIORITY_MAX = 1, 4


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def priority_to_number(label: Any) -> int:
    """
    Convert a priority label to 1-4.

    Case-insensitive and never raises: anything unknown (including
    non-strings and labels with surrounding whitespace) maps to 2.
    """
    if not isinstance(label, str) or not label:
        return DEFAULT_PRIORITY
    return PRIORITY_BY_LABEL.get(label.lower(), DEFAULT_PRIORITY)


def priority_label(priority: Any) -> str:
    """Human readable text for a numeric priority, or 'Não definida'."""
    if not _is_number(priority):
        return UNDEFINED_PRIORITY_TEXT
    return PRIORITY_TEXT.get(priority, UNDEFINED_PRIORITY_TEXT)


def is_valid_priority(priority: Any) -> bool:
    """Accepts either a known label (any case) or a number within 1-4."""
    if isinstance(priority, str):
        return priority.lower() in PRIORITY_BY_LABEL
    if _is_number(priority):
        return PRIORITY_MIN <= priority <= PRIORITY_MAX
    return False


def available_priorities() -> List[dict]:
    """All priorities with their numeric value, text and slug."""
    return [
        {"valor": value, "texto": PRIORITY_TEXT[value], "slug": slug}
        for slug, value in PRIORITY_BY_LABEL.items()
    ]
