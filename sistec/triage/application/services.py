"""
Triage Application Services
============================

The Triage/Resolution Orchestrator and the two AI calls it makes.

Flow of one run (per approved ticket):
1. Load the ticket and the opening user's recent tickets
2. Aprovado -> Triagem IA
3. Classify; any failure yields the fallback (human) verdict
4. Verdict IA: generate a solution, store it and move to Aguardando Resposta;
   an empty or failed generation moves to Com Analista instead
5. Verdict ANALISTA: move to Com Analista
6. Anything unexpected: force Com Analista

AI failures are logged and absorbed here; they never reach the caller.
"""

import asyncio
from typing import Any, List, Optional, Tuple

from sistec.core import LLMException, ResourceNotFoundException
from sistec.infrastructure.llm import ILLMClient
from sistec.tickets.application import ITicketRepository, TicketLifecycleService
from sistec.tickets.domain import AIResponseType, TicketStatus, priority_label, truncate_text
from sistec.triage.domain import (
    CONNECTION_TEST_PROMPT,
    GENERATION_MAX_CHARS,
    PERSISTENCE_MAX_CHARS,
    ResolutionPromptBuilder,
    TriageContext,
    TriageOutcome,
    TriagePromptBuilder,
    TriageVerdict,
    extract_verdict,
)
from sistec.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

PENDING_TRIAGE_STATUSES = (TicketStatus.APROVADO, TicketStatus.TRIAGEM_IA)


class ClassificationService:
    """
    Asks the AI for a triage verdict.

    Never raises: timeouts, transport errors and unparseable replies all
    come back as the fallback verdict.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        timeout_seconds: float = 30.0,
        max_tokens: int = 500,
        temperature: float = 0.3,
    ):
        self._llm = llm_client
        self._timeout = timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def classify(self, context: TriageContext) -> Tuple[TriageVerdict, bool]:
        """
        Returns:
            (verdict, succeeded). ``succeeded`` is False when the verdict is
            the fallback.
        """
        messages = TriagePromptBuilder.build_messages(context)

        try:
            with log_latency(logger, "triage_classification", ticket_id=context.ticket_id):
                response = await asyncio.wait_for(
                    self._llm.chat_completion(
                        messages=messages,
                        temperature=self._temperature,
                        max_tokens=self._max_tokens,
                        operation="triage",
                    ),
                    timeout=self._timeout,
                )
            verdict = extract_verdict(response.content)
        except asyncio.TimeoutError:
            logger.warning(
                "Triage classification timed out",
                extra={"ticket_id": context.ticket_id, "timeout_seconds": self._timeout}
            )
            return TriageVerdict.fallback(), False
        except Exception as e:
            logger.warning(
                "Triage classification failed",
                extra={"ticket_id": context.ticket_id, "error_type": type(e).__name__, "error": str(e)}
            )
            return TriageVerdict.fallback(), False

        logger.info(
            "Ticket classified",
            extra={
                "ticket_id": context.ticket_id,
                "recomendacao": verdict.recomendacao.value,
                "complexidade": verdict.complexidade,
            }
        )
        return verdict, True


class ResolutionService:
    """
    Asks the AI for a solution to show the ticket owner.

    Returns None on error, timeout or an empty reply. Solutions longer than
    GENERATION_MAX_CHARS are cut with a trailing "...".
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        timeout_seconds: float = 30.0,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ):
        self._llm = llm_client
        self._timeout = timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(self, context: TriageContext, verdict: TriageVerdict) -> Optional[str]:
        messages = ResolutionPromptBuilder.build_messages(context, verdict)

        try:
            with log_latency(logger, "triage_resolution", ticket_id=context.ticket_id):
                response = await asyncio.wait_for(
                    self._llm.chat_completion(
                        messages=messages,
                        temperature=self._temperature,
                        max_tokens=self._max_tokens,
                        operation="resolution",
                    ),
                    timeout=self._timeout,
                )
        except asyncio.TimeoutError:
            logger.warning(
                "Solution generation timed out",
                extra={"ticket_id": context.ticket_id, "timeout_seconds": self._timeout}
            )
            return None
        except Exception as e:
            logger.warning(
                "Solution generation failed",
                extra={"ticket_id": context.ticket_id, "error_type": type(e).__name__, "error": str(e)}
            )
            return None

        solution = response.content or ""
        if not solution.strip():
            logger.warning("Solution generation returned nothing", extra={"ticket_id": context.ticket_id})
            return None

        if len(solution) > GENERATION_MAX_CHARS:
            logger.info(
                "Solution truncated",
                extra={"ticket_id": context.ticket_id, "original_length": len(solution)}
            )
        return truncate_text(solution, GENERATION_MAX_CHARS)


class TriageOrchestrator:
    """
    Drives an approved ticket through triage and optional automated
    resolution, always leaving it in Aguardando Resposta or Com Analista.

    A run is idempotent per ticket: a ticket in Aprovado gets a full run, a
    ticket in Triagem IA (a run cut short by a restart) resumes at
    classification, and a ticket in any other status is left alone.
    """

    def __init__(
        self,
        lifecycle: TicketLifecycleService,
        classifier: ClassificationService,
        resolver: ResolutionService,
        history_limit: int = 5
    ):
        self._lifecycle = lifecycle
        self._classifier = classifier
        self._resolver = resolver
        self._history_limit = history_limit

    async def run(self, ticket_id: int) -> TriageOutcome:
        """Entry point for the scheduler. Never raises."""
        logger.info("Triage started", extra={"ticket_id": ticket_id})
        try:
            outcome = await self._run(ticket_id)
        except ResourceNotFoundException:
            logger.warning("Triage skipped, ticket not found", extra={"ticket_id": ticket_id})
            return TriageOutcome.SKIPPED
        except Exception as e:
            logger.error(
                "Triage failed, routing ticket to analyst",
                extra={"ticket_id": ticket_id, "error_type": type(e).__name__, "error": str(e)}
            )
            outcome = await self._force_analyst(ticket_id)

        logger.info("Triage finished", extra={"ticket_id": ticket_id, "outcome": outcome.value})
        return outcome

    async def pending_ticket_ids(self) -> List[int]:
        """Tickets whose triage has not reached a terminal outcome."""
        async with self._lifecycle.unit_of_work() as repo:
            return await repo.ids_with_status(PENDING_TRIAGE_STATUSES)

    async def _run(self, ticket_id: int) -> TriageOutcome:
        async with self._lifecycle.unit_of_work() as repo:
            ticket = await self._lifecycle.load(repo, ticket_id)
            if ticket.status not in PENDING_TRIAGE_STATUSES:
                logger.info(
                    "Triage skipped, ticket already triaged",
                    extra={"ticket_id": ticket_id, "status": ticket.status.value}
                )
                return TriageOutcome.SKIPPED

            context = await self._build_context(repo, ticket)

            if ticket.status == TicketStatus.APROVADO:
                await self._lifecycle.transition(repo, ticket, TicketStatus.TRIAGEM_IA)

        verdict, _ = await self._classifier.classify(context)

        if not verdict.automate:
            await self._lifecycle.update_status(ticket_id, TicketStatus.COM_ANALISTA)
            return TriageOutcome.WITH_ANALYST

        solution = await self._resolver.generate(context, verdict)
        if solution is None:
            await self._lifecycle.update_status(ticket_id, TicketStatus.COM_ANALISTA)
            return TriageOutcome.WITH_ANALYST

        async with self._lifecycle.unit_of_work() as repo:
            ticket = await self._lifecycle.load(repo, ticket_id)
            await repo.add_ai_response(
                ticket.id,
                AIResponseType.SOLUCAO,
                text=truncate_text(solution, PERSISTENCE_MAX_CHARS),
                triage_verdict=verdict.model_dump(mode="json"),
            )
            await self._lifecycle.transition(repo, ticket, TicketStatus.AGUARDANDO_RESPOSTA)

        return TriageOutcome.AWAITING_RESPONSE

    async def _build_context(self, repo: ITicketRepository, ticket: Any) -> TriageContext:
        previous = await repo.recent_for_user(ticket.opened_by_id, ticket.id, self._history_limit)
        user = await repo.user_name(ticket.opened_by_id)
        return TriageContext(
            ticket_id=ticket.id,
            title=ticket.title or "Sem título",
            category=ticket.category or "Não informada",
            problem=ticket.problem or "Não informado",
            description=ticket.description or "Descrição não fornecida",
            priority=priority_label(ticket.priority),
            user=user or f"Usuário {ticket.opened_by_id}",
            history=[
                {
                    "id_chamado": other.id,
                    "status": other.status.value,
                    "data_abertura": other.opened_at.isoformat() if other.opened_at else None,
                }
                for other in previous
            ],
        )

    async def _force_analyst(self, ticket_id: int) -> TriageOutcome:
        """
        Outer fail-safe. A ticket still in Aprovado goes through Triagem IA
        in the same transaction so its history stays a legal walk.
        """
        try:
            async with self._lifecycle.unit_of_work() as repo:
                ticket = await self._lifecycle.load(repo, ticket_id)
                if ticket.status == TicketStatus.APROVADO:
                    await self._lifecycle.transition(repo, ticket, TicketStatus.TRIAGEM_IA)
                if ticket.status != TicketStatus.TRIAGEM_IA:
                    logger.warning(
                        "Fail-safe found ticket outside triage",
                        extra={"ticket_id": ticket_id, "status": ticket.status.value}
                    )
                    return TriageOutcome.SKIPPED
                await self._lifecycle.transition(repo, ticket, TicketStatus.COM_ANALISTA)
        except Exception as e:
            # Left in Aprovado/Triagem IA; the startup recovery sweep retries it
            logger.critical(
                "Fail-safe could not route ticket to analyst",
                extra={"ticket_id": ticket_id, "error_type": type(e).__name__, "error": str(e)}
            )
            return TriageOutcome.SKIPPED
        return TriageOutcome.WITH_ANALYST


class ConnectionCheckService:
    """Sends the AI provider a trivial prompt and reports whether it answered OK."""

    def __init__(self, llm_client: Optional[ILLMClient], timeout_seconds: float = 30.0):
        self._llm = llm_client
        self._timeout = timeout_seconds

    async def check(self) -> dict:
        if self._llm is None:
            return {"success": False, "error": "LLM client not configured"}
        try:
            response = await asyncio.wait_for(
                self._llm.chat_completion(
                    messages=[{"role": "user", "content": CONNECTION_TEST_PROMPT}],
                    temperature=0.0,
                    max_tokens=10,
                    operation="connection_test",
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return {"success": False, "error": "timeout"}
        except LLMException as e:
            logger.warning("AI connection test failed", extra={"error": e.message})
            return {"success": False, "error": e.message}
        except Exception as e:
            logger.warning(
                "AI connection test failed",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return {"success": False, "error": str(e)}

        text = (response.content or "").strip()
        return {"success": "OK" in text, "response": text, "model": response.model}
