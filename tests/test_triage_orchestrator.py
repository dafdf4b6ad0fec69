import pytest

from conftest import ANALYST_VERDICT, IA_VERDICT, SOLUTION, open_ticket, slow_reply
from sistec.config import settings
from sistec.core import LLMException, RepositoryException, ResourceNotFoundException
from sistec.infrastructure.database import get_session_context
from sistec.main import build_services
from sistec.tickets.application import TicketLifecycleService
from sistec.tickets.domain import AIResponseType, TicketStatus, is_valid_walk
from sistec.tickets.infrastructure import (
    SQLAlchemyResolutionReportRepository,
    SQLAlchemyTicketRepository,
)
from sistec.triage.application import ClassificationService, ResolutionService, TriageOrchestrator
from sistec.triage.domain import FALLBACK_JUSTIFICATION, TriageContext, TriageOutcome

S = TicketStatus


async def approved_ticket(lifecycle, users, **kwargs):
    ticket = await open_ticket(lifecycle, users["requester"], **kwargs)
    await lifecycle.approve(ticket.id, users["ticket_manager"].id)
    return ticket


async def statuses(lifecycle, ticket_id):
    return [row.status for row in await lifecycle.status_history(ticket_id)]


def orchestrator_for(lifecycle, llm, timeout_seconds=5.0):
    return TriageOrchestrator(
        lifecycle,
        ClassificationService(llm, timeout_seconds=timeout_seconds),
        ResolutionService(llm, timeout_seconds=timeout_seconds),
    )


# ========== Happy paths ==========

async def test_ia_verdict_with_solution_awaits_response(lifecycle, orchestrator, llm, users):
    llm.script("triage", IA_VERDICT).script("resolution", SOLUTION)
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator.run(ticket.id)

    assert outcome == TriageOutcome.AWAITING_RESPONSE
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.AGUARDANDO_RESPOSTA,
    ]
    solution = await lifecycle.latest_solution(ticket.id)
    assert solution.text == SOLUTION
    assert solution.triage_verdict["recomendacao"] == "IA"
    assert solution.triage_verdict["tags"] == ["senha"]
    ticket = await lifecycle.get(ticket.id)
    assert ticket.forwarded_at is not None
    assert llm.calls == ["triage", "resolution"]


async def test_analyst_verdict_goes_to_analyst(lifecycle, orchestrator, llm, users):
    llm.script("triage", ANALYST_VERDICT)
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator.run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]
    assert llm.calls == ["triage"]
    assert await lifecycle.ai_responses(ticket.id) == []


async def test_configured_temperature_reaches_both_calls(database, users, llm):
    config = settings.model_copy(update={"llm_temperature": 0.9})
    lifecycle, orchestrator = build_services(config, llm)
    llm.script("triage", IA_VERDICT).script("resolution", SOLUTION)
    ticket = await approved_ticket(lifecycle, users)

    await orchestrator.run(ticket.id)

    assert llm.calls == ["triage", "resolution"]
    assert llm.temperatures == [0.9, 0.9]


async def test_long_solution_is_cut_to_1200_characters(lifecycle, orchestrator, llm, users):
    long_solution = "passo " * 300
    llm.script("triage", IA_VERDICT).script("resolution", long_solution)
    ticket = await approved_ticket(lifecycle, users)

    await orchestrator.run(ticket.id)

    stored = (await lifecycle.latest_solution(ticket.id)).text
    assert len(stored) == 1200
    assert stored.endswith("...")
    assert stored[:1197] == long_solution[:1197]


async def test_context_includes_previous_tickets(lifecycle, orchestrator, llm, users):
    await open_ticket(lifecycle, users["requester"], description="Mouse quebrado")
    llm.script("triage", ANALYST_VERDICT)
    captured = []

    original = llm.chat_completion

    async def spy(messages, **kwargs):
        captured.append(messages)
        return await original(messages, **kwargs)

    llm.chat_completion = spy
    ticket = await approved_ticket(lifecycle, users)

    await orchestrator.run(ticket.id)

    prompt = captured[0][-1]["content"]
    assert "Maria Souza" in prompt
    assert "Primeiro chamado do usuário" not in prompt
    assert '"status": "Aberto"' in prompt


# ========== AI failures ==========

@pytest.mark.parametrize("reply", [
    LLMException("503 Service Unavailable"),
    "Não consegui analisar este chamado.",
    '{"recomendacao": "IA", ',
    '{"complexidade": "BAIXA"}',
])
async def test_classification_failure_goes_to_analyst(lifecycle, orchestrator, llm, users, reply):
    llm.script("triage", reply)
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator.run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    history = await statuses(lifecycle, ticket.id)
    assert history[-1] == S.COM_ANALISTA
    assert is_valid_walk(history)
    assert "resolution" not in llm.calls


async def test_classification_timeout_goes_to_analyst(lifecycle, llm, users):
    llm.script("triage", slow_reply(1.0))
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator_for(lifecycle, llm, timeout_seconds=0.05).run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]


async def test_classifier_returns_fallback_verdict_on_failure(llm):
    llm.script("triage", "sem json")
    context = TriageContext(
        ticket_id=1, title="Sem internet", category="Rede", problem="sem-internet",
        description="Cabo desconectado", priority="Média", user="Maria Souza",
    )

    verdict, succeeded = await ClassificationService(llm).classify(context)

    assert not succeeded
    assert verdict.recomendacao.value == "ANALISTA"
    assert verdict.justificativa == FALLBACK_JUSTIFICATION
    assert verdict.tags == ["erro_ia"]


@pytest.mark.parametrize("reply", [
    "",
    "   \n ",
    LLMException("quota exceeded"),
])
async def test_solution_failure_goes_to_analyst(lifecycle, orchestrator, llm, users, reply):
    llm.script("triage", IA_VERDICT).script("resolution", reply)
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator.run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]
    assert await lifecycle.ai_responses(ticket.id) == []


async def test_solution_timeout_goes_to_analyst(lifecycle, llm, users):
    llm.script("triage", IA_VERDICT).script("resolution", slow_reply(1.0, SOLUTION))
    ticket = await approved_ticket(lifecycle, users)

    outcome = await orchestrator_for(lifecycle, llm, timeout_seconds=0.05).run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert (await lifecycle.get(ticket.id)).status == S.COM_ANALISTA


# ========== Fail-safe ==========

class FailingContextRepository(SQLAlchemyTicketRepository):
    async def recent_for_user(self, user_id, exclude_ticket_id, limit):
        raise RepositoryException("Histórico indisponível")


class FailingSolutionRepository(SQLAlchemyTicketRepository):
    async def add_ai_response(self, *args, **kwargs):
        raise RepositoryException("Falha ao gravar solução")


def lifecycle_with(repository_factory):
    return TicketLifecycleService(
        get_session_context, repository_factory, SQLAlchemyResolutionReportRepository
    )


async def test_failure_before_triage_forces_analyst_through_triagem(lifecycle, llm, users):
    ticket = await approved_ticket(lifecycle, users)
    broken = lifecycle_with(FailingContextRepository)

    outcome = await orchestrator_for(broken, llm).run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]
    assert llm.calls == []


async def test_failed_solution_write_forces_analyst(lifecycle, llm, users):
    llm.script("triage", IA_VERDICT).script("resolution", SOLUTION)
    ticket = await approved_ticket(lifecycle, users)
    broken = lifecycle_with(FailingSolutionRepository)

    outcome = await orchestrator_for(broken, llm).run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]
    assert await lifecycle.ai_responses(ticket.id) == []


# ========== Idempotency and recovery ==========

async def test_second_run_is_skipped(lifecycle, orchestrator, llm, users):
    llm.script("triage", IA_VERDICT).script("resolution", SOLUTION)
    ticket = await approved_ticket(lifecycle, users)

    first = await orchestrator.run(ticket.id)
    second = await orchestrator.run(ticket.id)

    assert first == TriageOutcome.AWAITING_RESPONSE
    assert second == TriageOutcome.SKIPPED
    assert len(await statuses(lifecycle, ticket.id)) == 4
    assert len(await lifecycle.ai_responses(ticket.id)) == 1


async def test_run_resumes_ticket_left_in_triagem(lifecycle, orchestrator, llm, users):
    llm.script("triage", ANALYST_VERDICT)
    ticket = await approved_ticket(lifecycle, users)
    await lifecycle.update_status(ticket.id, S.TRIAGEM_IA)

    outcome = await orchestrator.run(ticket.id)

    assert outcome == TriageOutcome.WITH_ANALYST
    assert await statuses(lifecycle, ticket.id) == [
        S.ABERTO, S.APROVADO, S.TRIAGEM_IA, S.COM_ANALISTA,
    ]


async def test_tickets_outside_triage_are_skipped(lifecycle, orchestrator, llm, users):
    ticket = await open_ticket(lifecycle, users["requester"])

    assert await orchestrator.run(ticket.id) == TriageOutcome.SKIPPED
    assert await orchestrator.run(4040) == TriageOutcome.SKIPPED
    assert (await lifecycle.get(ticket.id)).status == S.ABERTO
    assert llm.calls == []


async def test_pending_ticket_ids_lists_unfinished_triage(lifecycle, orchestrator, users):
    waiting = await approved_ticket(lifecycle, users)
    in_triage = await approved_ticket(lifecycle, users)
    await lifecycle.update_status(in_triage.id, S.TRIAGEM_IA)
    await open_ticket(lifecycle, users["requester"])

    assert await orchestrator.pending_ticket_ids() == [waiting.id, in_triage.id]


async def test_note_types_stay_out_of_solution_lookup(lifecycle, orchestrator, llm, users):
    llm.script("triage", ANALYST_VERDICT)
    ticket = await approved_ticket(lifecycle, users)
    await orchestrator.run(ticket.id)
    await lifecycle.escalate(ticket.id, users["analyst"].id, "Precisa de um técnico local")

    notes = await lifecycle.ai_responses(ticket.id)
    assert [n.response_type for n in notes] == [AIResponseType.ESCALONAMENTO]
    with pytest.raises(ResourceNotFoundException):
        await lifecycle.latest_solution(ticket.id)
