"""
Periodic trigger for the scheduled jobs.

Each job has its own interval trigger; jobs run independently and may
overlap with each other. A job never overlaps with itself: a tick that
fires while the previous run is still going is skipped.

Usage:
    scheduler = Scheduler()
    scheduler.start()
    ...
    scheduler.stop()
    await scheduler.wait_idle(timeout=30)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import sentry_sdk
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .jobs import meetup_reminder, no_show, review_request, status_transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobDefinition:
    name: str
    run: Callable[[], Awaitable[dict]]
    interval_seconds: int
    description: str


# =============================================================================
# Job configuration - SINGLE SOURCE OF TRUTH
# =============================================================================

JOB_CONFIG: dict[str, JobDefinition] = {
    job.name: job
    for job in (
        JobDefinition(
            name="meetup_reminder",
            run=lambda: meetup_reminder.run(),
            interval_seconds=60,
            description="Remind approved participants 30 minutes before start",
        ),
        JobDefinition(
            name="status_transition",
            run=lambda: status_transition.run(),
            interval_seconds=5 * 60,
            description="Move meetups to in_progress / ended by wall-clock time",
        ),
        JobDefinition(
            name="review_request",
            run=lambda: review_request.run(),
            interval_seconds=10 * 60,
            description="Ask participants for reviews after a meetup",
        ),
        JobDefinition(
            name="no_show",
            run=lambda: no_show.run(),
            interval_seconds=60 * 60,
            description="Flag no-shows and apply trust penalties",
        ),
    )
}


class Scheduler:
    """Owns the interval triggers for a set of jobs."""

    def __init__(self, jobs: dict[str, JobDefinition] | None = None):
        self.jobs = dict(JOB_CONFIG if jobs is None else jobs)
        self._scheduler: AsyncIOScheduler | None = None
        self._job_ids: list[str] = []
        self._running: dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def job_ids(self) -> list[str]:
        return list(self._job_ids)

    def start(self) -> None:
        """Register one interval trigger per job and start ticking."""
        if self._scheduler is not None:
            logger.warning("Scheduler already started")
            return

        self._scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
                "misfire_grace_time": 60,
            },
        )
        for name, job in self.jobs.items():
            self._scheduler.add_job(
                self._tick,
                trigger="interval",
                seconds=job.interval_seconds,
                id=name,
                replace_existing=True,
                kwargs={"name": name},
            )
            self._job_ids.append(name)

        self._scheduler.start()
        logger.info(f"Scheduler started with {len(self._job_ids)} jobs")

    def stop(self) -> None:
        """
        Cancel every trigger. Safe to call repeatedly or before start().

        Runs already in progress are left to finish; see wait_idle().
        """
        if self._scheduler is None:
            self._job_ids.clear()
            return

        for job_id in self._job_ids:
            try:
                self._scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        self._job_ids.clear()

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    async def _tick(self, name: str) -> None:
        """Trigger entry point: run a job unless it is still running."""
        current = self._running.get(name)
        if current is not None and not current.done():
            logger.warning(f"Job {name} is still running, skipping this tick")
            return

        task = asyncio.create_task(self._run_guarded(name), name=f"job:{name}")
        self._running[name] = task
        task.add_done_callback(lambda t: self._forget(name, t))
        # Shielded so shutting down the trigger does not cancel work mid-run
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.debug(f"Trigger for {name} cancelled, run continues in the background")

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._running.get(name) is task:
            del self._running[name]

    async def _run_guarded(self, name: str) -> dict | None:
        """Run a job, logging instead of raising on failure."""
        job = self.jobs[name]
        try:
            result = await job.run()
        except Exception as e:
            logger.exception(f"Job {name} failed")
            sentry_sdk.capture_exception(e)
            return None
        logger.debug(f"Job {name} finished: {result}")
        return result

    async def run_once(self, name: str) -> dict | None:
        """
        Run one job immediately, outside its trigger.

        Raises:
            KeyError: If no job with that name exists
        """
        if name not in self.jobs:
            raise KeyError(name)
        return await self._run_guarded(name)

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Wait for in-flight job runs to finish.

        Returns:
            True if nothing is running anymore
        """
        pending = [task for task in self._running.values() if not task.done()]
        if not pending:
            return True
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        return not still_running
