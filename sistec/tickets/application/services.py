"""
Tickets Application Services
============================

The Ticket Lifecycle Manager: every status change of a ticket goes
through ``TicketLifecycleService``.

A transition is one transactional unit that
1. reads the ticket (row-locked where the database supports it),
2. checks the edge against the transition graph,
3. appends the status history row,
4. swaps the status column from the status it read to the new one,
   stamping the columns tied to the new status,
5. inserts any audit note.

A failure at any step rolls back every write of the unit. The status swap
is conditional on the status read in step 1, so a concurrent writer makes
the second transition fail with a conflict instead of forking the history.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from sistec.core import (
    ConflictException,
    InvalidTransitionException,
    ResourceNotFoundException,
    TransitionConflictException,
    ValidationException,
)
from sistec.tickets.domain import (
    STAMPED_COLUMNS,
    INITIAL_STATUS,
    AIResponseType,
    FeedbackValue,
    TicketStatus,
    ensure_transition,
    extract_title,
    priority_to_number,
    validate_reason,
)
from sistec.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

RESOLVED_BY_ANALYST_NOTE = "Chamado resolvido pelo analista"
ESCALATION_NOTE = "Chamado escalado para gerente. Motivo: {reason}"


# ========== Repository Interfaces ==========

class ITicketRepository(ABC):
    """Interface for ticket, status history and AI response data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: int, for_update: bool = False) -> Optional[Any]:
        """Get ticket by ID, optionally locking the row."""

    @abstractmethod
    async def create(self, values: Dict[str, Any]) -> Any:
        """Insert a new ticket row."""

    @abstractmethod
    async def list(self, filters: dict, limit: int = 100, offset: int = 0) -> List[Any]:
        """List tickets, newest first."""

    @abstractmethod
    async def recent_for_user(self, user_id: int, exclude_ticket_id: int, limit: int) -> List[Any]:
        """The user's most recent other tickets."""

    @abstractmethod
    async def user_name(self, user_id: int) -> Optional[str]:
        """Display name of a user."""

    @abstractmethod
    async def ids_with_status(self, statuses: Sequence[TicketStatus]) -> List[int]:
        """IDs of tickets currently in any of the given statuses."""

    @abstractmethod
    async def append_status(self, ticket_id: int, status: TicketStatus, actor_id: Optional[int]) -> Any:
        """Append a status history row."""

    @abstractmethod
    async def swap_status(
        self,
        ticket_id: int,
        expected: TicketStatus,
        new: TicketStatus,
        values: Dict[str, Any]
    ) -> bool:
        """Set status (and columns) only if the current status is ``expected``."""

    @abstractmethod
    async def refresh(self, ticket: Any) -> None:
        """Reload a ticket's columns from the database."""

    @abstractmethod
    async def status_history(self, ticket_id: int) -> List[Any]:
        """Status history in insertion order."""

    @abstractmethod
    async def add_ai_response(
        self,
        ticket_id: int,
        response_type: AIResponseType,
        text: Optional[str] = None,
        triage_verdict: Optional[dict] = None
    ) -> Any:
        """Insert an AI response record."""

    @abstractmethod
    async def latest_ai_response(self, ticket_id: int, response_type: AIResponseType) -> Optional[Any]:
        """Most recent AI response record of the given type."""

    @abstractmethod
    async def ai_responses(self, ticket_id: int) -> List[Any]:
        """Every AI response record of a ticket, oldest first."""

    @abstractmethod
    async def record_feedback(self, response_id: int, feedback: FeedbackValue, at: datetime) -> None:
        """Store the owner's feedback on an AI response record."""


class IResolutionReportRepository(ABC):
    """Interface for resolution report storage."""

    @abstractmethod
    async def get_by_ticket(self, ticket_id: int) -> Optional[Any]:
        """Report of a ticket, if any."""

    @abstractmethod
    async def create(self, values: Dict[str, Any]) -> Any:
        """Insert a report."""


class IUserRepository(ABC):
    """Interface for user lookups."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Any]:
        """Get user by e-mail."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[Any]:
        """Get user by ID."""


class ITriageDispatcher(ABC):
    """Hands an approved ticket to the triage orchestrator, out of band."""

    @abstractmethod
    def schedule(self, ticket_id: int) -> None:
        """Schedule one triage run for the ticket."""


SessionScope = Callable[[], AsyncContextManager[AsyncSession]]
TicketRepositoryFactory = Callable[[AsyncSession], ITicketRepository]
ReportRepositoryFactory = Callable[[AsyncSession], IResolutionReportRepository]


# ========== Application Services ==========

class TicketLifecycleService:
    """
    Owns the ticket status column, the status history and the lifecycle
    timestamps.

    Each public operation opens its own session through ``session_scope``;
    ``unit_of_work`` lets the triage orchestrator combine its own writes
    with a transition in the same transaction.
    """

    def __init__(
        self,
        session_scope: SessionScope,
        repository_factory: TicketRepositoryFactory,
        report_repository_factory: Optional[ReportRepositoryFactory] = None,
        dispatcher: Optional[ITriageDispatcher] = None
    ):
        self._session_scope = session_scope
        self._repository_factory = repository_factory
        self._report_repository_factory = report_repository_factory
        self._dispatcher = dispatcher

    def set_dispatcher(self, dispatcher: ITriageDispatcher) -> None:
        self._dispatcher = dispatcher

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[ITicketRepository]:
        """One transaction: commits on clean exit, rolls back on error."""
        async with self._session_scope() as session:
            yield self._repository_factory(session)

    # ========== Transition primitive ==========

    async def load(self, repo: ITicketRepository, ticket_id: int, for_update: bool = True) -> Any:
        """Read a ticket inside a unit of work or raise 404."""
        ticket = await repo.get_by_id(ticket_id, for_update=for_update)
        if ticket is None:
            raise ResourceNotFoundException("Chamado", str(ticket_id))
        return ticket

    async def transition(
        self,
        repo: ITicketRepository,
        ticket: Any,
        target: TicketStatus,
        actor_id: Optional[int] = None,
        extra_values: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Move ``ticket`` to ``target`` inside the caller's unit of work.

        Raises:
            InvalidTransitionException: ``target`` is not reachable from the current status
            TransitionConflictException: the status changed since ``ticket`` was read
        """
        current = ticket.status
        ensure_transition(ticket.id, current, target)

        await repo.append_status(ticket.id, target, actor_id)

        now = datetime.now(timezone.utc)
        values: Dict[str, Any] = {}
        for column in STAMPED_COLUMNS.get(target, ()):
            values[column] = actor_id if column == "resolver_id" else now
        if extra_values:
            values.update(extra_values)

        if not await repo.swap_status(ticket.id, current, target, values):
            raise TransitionConflictException(ticket.id, current.value)
        await repo.refresh(ticket)

        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": ticket.id,
                "from_status": current.value,
                "to_status": target.value,
                "actor_id": actor_id,
            }
        )
        return ticket

    # ========== Queries ==========

    async def get(self, ticket_id: int) -> Any:
        async with self.unit_of_work() as repo:
            return await self.load(repo, ticket_id, for_update=False)

    async def list(self, filters: Optional[dict] = None, limit: int = 100, offset: int = 0) -> List[Any]:
        async with self.unit_of_work() as repo:
            return await repo.list(filters or {}, limit=limit, offset=offset)

    async def list_by_status(self, status: TicketStatus) -> List[Any]:
        return await self.list({"status": status})

    async def status_history(self, ticket_id: int) -> List[Any]:
        async with self.unit_of_work() as repo:
            await self.load(repo, ticket_id, for_update=False)
            return await repo.status_history(ticket_id)

    async def ai_responses(self, ticket_id: int) -> List[Any]:
        async with self.unit_of_work() as repo:
            return await repo.ai_responses(ticket_id)

    async def latest_solution(self, ticket_id: int) -> Any:
        """Latest SOLUCAO record of a ticket or 404."""
        async with self.unit_of_work() as repo:
            await self.load(repo, ticket_id, for_update=False)
            record = await repo.latest_ai_response(ticket_id, AIResponseType.SOLUCAO)
        if record is None:
            raise ResourceNotFoundException("Solução IA do chamado", str(ticket_id))
        return record

    # ========== Commands ==========

    async def create(
        self,
        opened_by_id: int,
        category: str,
        problem: str,
        description: str,
        priority: Any = None
    ) -> Any:
        """Open a ticket in Aberto with a one-entry history."""
        async with self.unit_of_work() as repo:
            ticket = await repo.create({
                "opened_by_id": opened_by_id,
                "priority": priority_to_number(priority),
                "category": category,
                "problem": problem,
                "description": description,
                "title": extract_title(description, problem),
                "status": INITIAL_STATUS,
            })
            await repo.append_status(ticket.id, INITIAL_STATUS, opened_by_id)

        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.id, "opened_by": opened_by_id, "priority": ticket.priority}
        )
        return ticket

    async def update_status(
        self,
        ticket_id: int,
        new_status: TicketStatus,
        acting_user_id: Optional[int] = None
    ) -> Any:
        """Generic transition in its own transaction."""
        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            return await self.transition(repo, ticket, new_status, acting_user_id)

    async def approve(self, ticket_id: int, manager_id: int) -> Any:
        """
        Aberto -> Aprovado, then hand the ticket to triage.

        Triage is dispatched only once the approval has committed and is
        never awaited here.
        """
        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            await self.transition(repo, ticket, TicketStatus.APROVADO, manager_id)

        self._dispatch_triage(ticket.id)
        return ticket

    async def reject(self, ticket_id: int, reason: str, manager_id: int) -> Any:
        """Aberto -> Rejeitado; the reason is kept verbatim on the ticket and in a note."""
        validate_reason(reason)

        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            await self.transition(
                repo, ticket, TicketStatus.REJEITADO, manager_id,
                extra_values={"rejection_reason": reason},
            )
            await repo.add_ai_response(ticket.id, AIResponseType.REPROVACAO, text=reason)
        return ticket

    async def resolve(
        self,
        ticket_id: int,
        resolver_id: int,
        from_status: TicketStatus = TicketStatus.COM_ANALISTA
    ) -> Any:
        """
        Com Analista (or Escalado) -> Resolvido by a human.

        ``from_status`` is chosen by the caller's permission level; a ticket
        in any other status is refused.
        """
        if from_status not in (TicketStatus.COM_ANALISTA, TicketStatus.ESCALADO):
            raise ValidationException(f"Resolução manual não parte de '{from_status.value}'")

        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            if ticket.status != from_status:
                raise InvalidTransitionException(
                    ticket.id, ticket.status.value, TicketStatus.RESOLVIDO.value,
                    f"Chamado {ticket.id} não está '{from_status.value}'",
                )
            await self.transition(repo, ticket, TicketStatus.RESOLVIDO, resolver_id)
            await repo.add_ai_response(
                ticket.id, AIResponseType.ANALISTA_RESOLUCAO, text=RESOLVED_BY_ANALYST_NOTE
            )
        return ticket

    async def resolve_escalated(self, ticket_id: int, resolver_id: int) -> Any:
        return await self.resolve(ticket_id, resolver_id, from_status=TicketStatus.ESCALADO)

    async def escalate(self, ticket_id: int, analyst_id: int, reason: str) -> Any:
        """Com Analista -> Escalado with an escalation note carrying the reason."""
        trimmed = validate_reason(reason)

        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            await self.transition(repo, ticket, TicketStatus.ESCALADO, analyst_id)
            await repo.add_ai_response(
                ticket.id, AIResponseType.ESCALONAMENTO,
                text=ESCALATION_NOTE.format(reason=trimmed),
            )
        return ticket

    async def close(self, ticket_id: int, admin_id: int) -> Any:
        """
        Resolvido -> Fechado. Administrative only; no HTTP route exposes it.

        ``resolved_at`` and ``resolver_id`` are kept on the closed ticket so it
        still records who resolved it and when; they are not cleared on close.
        """
        return await self.update_status(ticket_id, TicketStatus.FECHADO, admin_id)

    async def submit_feedback(self, ticket_id: int, owner_id: int, feedback: FeedbackValue) -> Any:
        """
        Record the owner's verdict on the latest AI solution and move the
        ticket: DEU_CERTO -> Resolvido (resolver = owner), DEU_ERRADO ->
        Com Analista. Both writes share one transaction.
        """
        target = (
            TicketStatus.RESOLVIDO if feedback == FeedbackValue.DEU_CERTO
            else TicketStatus.COM_ANALISTA
        )

        async with self.unit_of_work() as repo:
            ticket = await self.load(repo, ticket_id)
            if ticket.status != TicketStatus.AGUARDANDO_RESPOSTA:
                raise InvalidTransitionException(
                    ticket.id, ticket.status.value, target.value,
                    f"Chamado {ticket.id} não está aguardando resposta",
                )

            solution = await repo.latest_ai_response(ticket.id, AIResponseType.SOLUCAO)
            if solution is None:
                raise ResourceNotFoundException("Solução IA do chamado", str(ticket.id))

            await repo.record_feedback(solution.id, feedback, datetime.now(timezone.utc))
            await self.transition(repo, ticket, target, owner_id)

        logger.info(
            "AI solution feedback recorded",
            extra={"ticket_id": ticket.id, "feedback": feedback.value}
        )
        return ticket

    async def submit_resolution_report(self, ticket_id: int, resolver_id: int, report: str) -> Any:
        """Store the analyst's write-up. One report per ticket."""
        if self._report_repository_factory is None:
            raise RuntimeError("Resolution report repository not configured")

        async with self._session_scope() as session:
            tickets = self._repository_factory(session)
            reports = self._report_repository_factory(session)

            ticket = await self.load(tickets, ticket_id, for_update=False)
            if await reports.get_by_ticket(ticket.id) is not None:
                raise ConflictException(
                    f"Chamado {ticket.id} já possui relatório de resolução",
                    {"ticket_id": ticket.id},
                )
            created = await reports.create({
                "ticket_id": ticket.id,
                "opened_by_id": ticket.opened_by_id,
                "resolved_by_id": resolver_id,
                "category": ticket.category,
                "problem": ticket.problem,
                "report": report,
            })

        logger.info("Resolution report stored", extra={"ticket_id": ticket_id, "resolver_id": resolver_id})
        return created

    # ========== Internals ==========

    def _dispatch_triage(self, ticket_id: int) -> None:
        if self._dispatcher is None:
            logger.warning("No triage dispatcher configured", extra={"ticket_id": ticket_id})
            return
        try:
            self._dispatcher.schedule(ticket_id)
        except Exception as e:
            # The ticket stays in Aprovado and is picked up by the startup recovery sweep
            logger.error(
                "Failed to schedule triage",
                extra={"ticket_id": ticket_id, "error": str(e)}
            )
