"""
Triage Scheduler
================

APScheduler wrapper that runs triage out of band, a short delay after an
approval commits.

Each ticket has at most one pending job (``triage-<id>``); scheduling the
same ticket again replaces it. Because the orchestrator is idempotent per
ticket, the startup sweep can safely reschedule every ticket still in
Aprovado or Triagem IA.
"""

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sistec.tickets.application import ITriageDispatcher
from sistec.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

TriageJob = Callable[[int], Awaitable[object]]


class TriageScheduler(ITriageDispatcher):
    """
    Wrapper for APScheduler for one-shot triage jobs.

    Manages the lifecycle of the scheduler and jobs.
    """

    def __init__(self, job_func: TriageJob, delay_seconds: float = 1.0):
        self._job_func = job_func
        self.delay_seconds = delay_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @staticmethod
    def job_id(ticket_id: int) -> str:
        return f"triage-{ticket_id}"

    def start(self) -> None:
        """Start the scheduler. Must be called from a running event loop."""
        if self._running:
            logger.warning("Triage scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.start()
        self._running = True

        logger.info("Triage scheduler started", extra={"delay_seconds": self.delay_seconds})

    def stop(self) -> None:
        """Stop the scheduler; pending jobs are dropped and recovered on next start."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Triage scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    def schedule(self, ticket_id: int) -> None:
        """Run triage for ``ticket_id`` after the configured delay."""
        if not self._running or self._scheduler is None:
            raise RuntimeError("Triage scheduler is not running")

        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.delay_seconds)
        self._scheduler.add_job(
            self._job_func,
            "date",
            run_date=run_date,
            args=[ticket_id],
            id=self.job_id(ticket_id),
            name=f"Triage ticket {ticket_id}",
            misfire_grace_time=None,
            max_instances=1,
            replace_existing=True,
        )

        logger.info("Triage scheduled", extra={"ticket_id": ticket_id, "run_date": run_date.isoformat()})

    def pending_ticket_ids(self) -> List[int]:
        """Ticket IDs with a job still waiting to run."""
        if self._scheduler is None:
            return []
        prefix = self.job_id(0)[:-1]
        return [
            int(job.id[len(prefix):])
            for job in self._scheduler.get_jobs()
            if job.id.startswith(prefix)
        ]

    async def recover(self, list_pending: Callable[[], Awaitable[List[int]]]) -> List[int]:
        """
        Reschedule tickets whose triage never reached a terminal status,
        e.g. after a crash between approval and triage.
        """
        ticket_ids = await list_pending()
        for ticket_id in ticket_ids:
            self.schedule(ticket_id)

        if ticket_ids:
            logger.info(
                "Recovered pending triage runs",
                extra={"count": len(ticket_ids), "ticket_ids": ticket_ids}
            )
        return ticket_ids
