import asyncio

import pytest

from sistec.triage.infrastructure import TriageScheduler


@pytest.fixture
async def scheduler():
    async def job(ticket_id):
        return ticket_id

    triage_scheduler = TriageScheduler(job, delay_seconds=60)
    triage_scheduler.start()
    yield triage_scheduler
    triage_scheduler.stop()


def test_job_id_is_per_ticket():
    assert TriageScheduler.job_id(12) == "triage-12"


def test_schedule_requires_running_scheduler():
    async def job(ticket_id):
        return ticket_id

    with pytest.raises(RuntimeError):
        TriageScheduler(job).schedule(1)


async def test_rescheduling_replaces_pending_job(scheduler):
    scheduler.schedule(5)
    scheduler.schedule(5)
    scheduler.schedule(6)

    assert sorted(scheduler.pending_ticket_ids()) == [5, 6]


async def test_recover_reschedules_every_pending_ticket(scheduler):
    async def list_pending():
        return [3, 8]

    recovered = await scheduler.recover(list_pending)

    assert recovered == [3, 8]
    assert sorted(scheduler.pending_ticket_ids()) == [3, 8]


async def test_scheduled_job_runs_after_delay():
    done = asyncio.Event()
    runs = []

    async def job(ticket_id):
        runs.append(ticket_id)
        done.set()

    triage_scheduler = TriageScheduler(job, delay_seconds=0)
    triage_scheduler.start()
    try:
        triage_scheduler.schedule(9)
        await asyncio.wait_for(done.wait(), timeout=5)
    finally:
        triage_scheduler.stop()

    assert runs == [9]
    assert triage_scheduler.pending_ticket_ids() == []


def test_stop_is_idempotent():
    async def job(ticket_id):
        return ticket_id

    triage_scheduler = TriageScheduler(job)
    triage_scheduler.stop()
    assert not triage_scheduler.is_running
