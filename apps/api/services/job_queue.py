"""In-process transcript job runner and startup recovery helpers."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Callable, List, Optional, Set

from sqlalchemy import select

from config import settings
from database import async_session_maker
from models.transcript_job import ERROR, IN_PROGRESS_STATUSES, QUEUED, TranscriptJob, utcnow
from services.transcript_job import JobOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Job was interrupted before it finished. Submit the URL again."


class JobRunner:
    """
    Schedules each job as its own asyncio task.

    ``submit`` returns the task so callers can await it or ignore it; the
    runner keeps a reference until the task finishes.
    """

    def __init__(self, orchestrator_factory: Callable[[], JobOrchestrator]) -> None:
        self._orchestrator_factory = orchestrator_factory
        self._orchestrator: Optional[JobOrchestrator] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def orchestrator(self) -> JobOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = self._orchestrator_factory()
        return self._orchestrator

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, job_id: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self.orchestrator.run(job_id),
            name=f"transcript-job:{job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s crashed: %s", task.get_name(), exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for every outstanding job task."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_runner: Optional[JobRunner] = None


def get_job_runner() -> JobRunner:
    """Return the process-wide runner, built from settings on first use."""
    global _runner
    if _runner is None:
        _runner = JobRunner(lambda: build_orchestrator(settings))
    return _runner


def enqueue_transcript_job(job_id: str) -> asyncio.Task:
    """Fire-and-forget submission used by the API."""
    return get_job_runner().submit(job_id)


async def recover_stalled_jobs(max_age_minutes: int = 0, session_maker=None) -> int:
    """Mark in-progress jobs left behind by a previous process as failed."""
    cutoff = utcnow() - timedelta(minutes=max(max_age_minutes, 0))
    async with (session_maker or async_session_maker)() as db:
        result = await db.execute(
            select(TranscriptJob).where(
                TranscriptJob.status.in_(IN_PROGRESS_STATUSES),
                TranscriptJob.updated_at <= cutoff,
            )
        )
        jobs = result.scalars().all()
        for job in jobs:
            job.status = ERROR
            job.error = INTERRUPTED_MESSAGE
            job.transcript = None
            job.analysis_json = None
            job.updated_at = utcnow()
        if jobs:
            await db.commit()
        return len(jobs)


async def resume_queued_jobs(
    session_maker=None,
    enqueue: Optional[Callable[[str], object]] = None,
) -> List[str]:
    """Re-submit jobs that were accepted but never started."""
    async with (session_maker or async_session_maker)() as db:
        result = await db.execute(
            select(TranscriptJob.id)
            .where(TranscriptJob.status == QUEUED)
            .order_by(TranscriptJob.created_at.asc())
        )
        job_ids = list(result.scalars().all())
    submit = enqueue or enqueue_transcript_job
    for job_id in job_ids:
        submit(job_id)
    return job_ids
