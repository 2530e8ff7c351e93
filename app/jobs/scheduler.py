"""APScheduler wrapper that runs registered jobs on their cron settings."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.exceptions import JobError
from app.core.logging import get_logger

from .executor import execute_job
from .registry import list_jobs

logger = get_logger("jobs.scheduler")

_scheduler: Optional["JobScheduler"] = None


def default_schedules() -> dict[str, tuple[str, str]]:
    """Crontab and description for every registered job that has a schedule."""
    return {
        spec.name: (getattr(settings, spec.cron_setting), spec.description)
        for spec in list_jobs()
        if spec.cron_setting
    }


class JobScheduler:
    """Runs scheduled jobs in-process; never two runs of the same job at once."""

    def __init__(self):
        self._scheduler = AsyncIOScheduler(
            timezone=settings.scheduler_timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self._running = False
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return
        if not settings.scheduler_enabled:
            logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
            return

        for name, (cron_expr, description) in default_schedules().items():
            try:
                trigger = CronTrigger.from_crontab(cron_expr, timezone=settings.scheduler_timezone)
            except ValueError as e:
                logger.error(f"Invalid crontab for {name} ({cron_expr!r}): {e}")
                continue
            self._scheduler.add_job(
                self._execute_job,
                trigger=trigger,
                args=[name],
                id=name,
                name=description,
                replace_existing=True,
            )
            logger.info(f"Scheduled {name} at '{cron_expr}' ({settings.scheduler_timezone})")

        self._scheduler.start()
        self._running = True

    async def stop(self) -> None:
        if not self._running:
            return
        self._scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Job scheduler stopped")

    async def _execute_job(self, name: str) -> Optional[str]:
        """Scheduled entry point. Failures are logged, never raised into APScheduler."""
        lock = self._locks.setdefault(name, asyncio.Lock())
        if lock.locked():
            logger.info(f"Job {name} skipped, previous run still active")
            return None

        async with lock:
            try:
                return await execute_job(name)
            except JobError as e:
                logger.error(f"Scheduled run of {name} failed: {e.message}")
                return None

    async def run_job_now(self, name: str) -> str:
        """Run a job outside its schedule, sharing the per-job lock."""
        lock = self._locks.setdefault(name, asyncio.Lock())
        if lock.locked():
            return f"Job {name} already running"
        async with lock:
            return await execute_job(name)

    def get_next_run_time(self, name: str) -> Optional[datetime]:
        job = self._scheduler.get_job(name)
        return job.next_run_time if job else None

    def next_run_times(self) -> dict[str, Optional[datetime]]:
        return {name: self.get_next_run_time(name) for name in default_schedules()}


def get_scheduler() -> Optional[JobScheduler]:
    return _scheduler


async def start_scheduler() -> JobScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = JobScheduler()
    await _scheduler.start()
    return _scheduler


async def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
