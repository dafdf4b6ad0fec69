import pytest

from sistec.core import InvalidTransitionException, ValidationException
from sistec.tickets.domain import (
    TRANSITIONS,
    TicketStatus,
    available_priorities,
    can_transition,
    ensure_transition,
    extract_title,
    is_valid_priority,
    is_valid_walk,
    priority_label,
    priority_to_number,
    truncate_text,
    validate_reason,
)

S = TicketStatus


# ========== Priority ==========

@pytest.mark.parametrize("label, expected", [
    ("baixa", 1),
    ("MEDIA", 2),
    ("Alta", 3),
    ("urgente", 4),
    ("crítica", 2),
    ("", 2),
    (None, 2),
    (3, 2),
    (" alta", 2),
])
def test_priority_to_number(label, expected):
    assert priority_to_number(label) == expected


@pytest.mark.parametrize("priority, expected", [
    (1, "Baixa"),
    (2, "Média"),
    (3, "Alta"),
    (4, "Urgente"),
    (0, "Não definida"),
    (7, "Não definida"),
    ("3", "Não definida"),
    (True, "Não definida"),
    (None, "Não definida"),
])
def test_priority_label(priority, expected):
    assert priority_label(priority) == expected


def test_is_valid_priority():
    assert is_valid_priority("URGENTE")
    assert is_valid_priority(1)
    assert not is_valid_priority(5)
    assert not is_valid_priority("crítica")
    assert not is_valid_priority(None)


def test_available_priorities_lists_every_level():
    options = available_priorities()
    assert [o["valor"] for o in options] == [1, 2, 3, 4]
    assert options[1] == {"valor": 2, "texto": "Média", "slug": "media"}


# ========== Title extraction ==========

def test_title_from_marker_line():
    description = "Bom dia\n**Título:** Impressora não imprime\nDetalhes..."
    assert extract_title(description, "impressora") == "Impressora não imprime"


def test_title_marker_without_text_keeps_whole_line():
    assert extract_title("Título:\nsegunda linha", "rede") == "Título:"


def test_title_from_first_non_empty_line():
    assert extract_title("\n\n  Computador lento  \nmais texto", "lentidao") == "Computador lento"


def test_title_is_bounded_to_100_characters():
    title = extract_title("x" * 250, "rede")
    assert len(title) == 100
    assert title.endswith("...")


def test_title_falls_back_to_problem():
    assert extract_title("\n  \n", "problema-de-rede") == "Problema De Rede"


def test_title_defaults_when_nothing_usable():
    assert extract_title("", "rede") == "Sem título"
    assert extract_title("   ", None) == "Sem título"


def test_truncate_text():
    assert truncate_text("curto", 10) == "curto"
    cut = truncate_text("a" * 20, 10)
    assert cut == "a" * 7 + "..."


# ========== Transition graph ==========

def test_every_status_has_an_entry_in_the_graph():
    assert set(TRANSITIONS) == set(TicketStatus)


@pytest.mark.parametrize("terminal", [S.REJEITADO, S.FECHADO])
def test_terminal_statuses_have_no_exits(terminal):
    assert all(not can_transition(terminal, target) for target in TicketStatus)


@pytest.mark.parametrize("current, target", [
    (S.ABERTO, S.APROVADO),
    (S.ABERTO, S.REJEITADO),
    (S.APROVADO, S.TRIAGEM_IA),
    (S.TRIAGEM_IA, S.AGUARDANDO_RESPOSTA),
    (S.TRIAGEM_IA, S.COM_ANALISTA),
    (S.AGUARDANDO_RESPOSTA, S.RESOLVIDO),
    (S.AGUARDANDO_RESPOSTA, S.COM_ANALISTA),
    (S.COM_ANALISTA, S.RESOLVIDO),
    (S.COM_ANALISTA, S.ESCALADO),
    (S.ESCALADO, S.RESOLVIDO),
    (S.RESOLVIDO, S.FECHADO),
])
def test_legal_edges(current, target):
    assert can_transition(current, target)
    ensure_transition(1, current, target)


@pytest.mark.parametrize("current, target", [
    (S.ABERTO, S.RESOLVIDO),
    (S.APROVADO, S.COM_ANALISTA),
    (S.ESCALADO, S.COM_ANALISTA),
    (S.RESOLVIDO, S.ABERTO),
    (S.AGUARDANDO_RESPOSTA, S.ESCALADO),
])
def test_illegal_edges_raise(current, target):
    with pytest.raises(InvalidTransitionException) as exc:
        ensure_transition(42, current, target)
    assert exc.value.status_code == 400
    assert exc.value.details["current_status"] == current.value


def test_valid_walks():
    assert is_valid_walk([S.ABERTO])
    assert is_valid_walk([S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA, S.ESCALADO, S.RESOLVIDO])
    assert not is_valid_walk([])
    assert not is_valid_walk([S.APROVADO, S.TRIAGEM_IA])
    assert not is_valid_walk([S.ABERTO, S.APROVADO, S.COM_ANALISTA])


# ========== Reasons ==========

def test_reason_is_trimmed_before_length_check():
    assert validate_reason("   fora do escopo   ") == "fora do escopo"
    with pytest.raises(ValidationException):
        validate_reason("   curto    ")
    with pytest.raises(ValidationException):
        validate_reason(None)


def test_reason_of_exactly_ten_characters_is_accepted():
    assert validate_reason("0123456789") == "0123456789"
