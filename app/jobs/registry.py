"""Job registry: job name -> callable, description and cron setting."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from app.core.logging import get_logger


logger = get_logger("jobs.registry")


@dataclass(frozen=True)
class JobSpec:
    """A registered job.

    ``cron_setting`` names the ``Settings`` field holding the job's crontab;
    jobs without one are manual only.
    """

    name: str
    func: Callable
    description: str = ""
    cron_setting: str | None = None


_registry: dict[str, JobSpec] = {}


def register_job(
    name: str,
    description: str = "",
    cron_setting: str | None = None,
) -> Callable:
    """
    Decorator to register a job function.

    Usage:
        @register_job("momentum_daily", "Recompute ranking", cron_setting="momentum_daily_cron")
        async def momentum_daily_job() -> str:
            ...
    """

    def decorator(func: Callable) -> Callable:
        if name in _registry and _registry[name].func is not func:
            logger.warning(f"Job {name} re-registered, replacing {_registry[name].func.__qualname__}")
        _registry[name] = JobSpec(name, func, description or (func.__doc__ or "").strip().split("\n")[0], cron_setting)
        return func

    return decorator


def get_job(name: str) -> Callable | None:
    """Get a registered job function by name."""
    spec = _registry.get(name)
    return spec.func if spec else None


def get_job_spec(name: str) -> JobSpec | None:
    return _registry.get(name)


def list_jobs() -> list[JobSpec]:
    """Registered jobs in registration order."""
    return list(_registry.values())


def list_job_names() -> list[str]:
    return list(_registry)
