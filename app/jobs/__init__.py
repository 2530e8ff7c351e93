"""Background jobs: registry, executor and cron scheduler."""

from .scheduler import (
    JobScheduler,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)
from .registry import (
    JobSpec,
    register_job,
    get_job,
    get_job_spec,
    list_jobs,
    list_job_names,
)
from .executor import execute_job


async def run_job_now(name: str) -> str:
    """Run a registered job immediately, through the scheduler when it is up."""
    scheduler = get_scheduler()
    if scheduler is None or not scheduler.running:
        return await execute_job(name)
    return await scheduler.run_job_now(name)


__all__ = [
    "JobScheduler",
    "JobSpec",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "register_job",
    "get_job",
    "get_job_spec",
    "list_jobs",
    "list_job_names",
    "execute_job",
    "run_job_now",
]
