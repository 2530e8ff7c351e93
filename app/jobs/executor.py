"""Run a registered job by name, translating failures into JobError."""

from __future__ import annotations

import asyncio
import inspect

from app.core.exceptions import JobError
from app.core.logging import get_logger

from .registry import get_job_spec
from .utils import elapsed_ms, job_timer


logger = get_logger("jobs.executor")


async def execute_job(name: str, timeout: float | None = None) -> str:
    """
    Execute a job by name.

    Synchronous jobs run in a worker thread so they never block the loop.

    Args:
        name: Registered job name
        timeout: Optional limit in seconds for this execution

    Returns:
        The job's result message ("Completed" when it returns nothing)

    Raises:
        JobError: UNKNOWN_JOB, JOB_TIMEOUT or JOB_EXECUTION_FAILED
    """
    spec = get_job_spec(name)
    if spec is None:
        raise JobError(message=f"Unknown job: {name}", error_code="UNKNOWN_JOB")

    if inspect.iscoroutinefunction(spec.func):
        call = spec.func()
    else:
        call = asyncio.to_thread(spec.func)

    start = job_timer()
    try:
        result = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Job {name} timed out after {timeout}s")
        raise JobError(
            message=f"Job {name} timed out",
            error_code="JOB_TIMEOUT",
            details={"job_name": name, "timeout_seconds": timeout},
        ) from e
    except Exception as e:
        duration_ms = elapsed_ms(start)
        logger.exception(f"Job {name} failed after {duration_ms}ms")
        raise JobError(
            message=f"Job execution failed: {e!s}",
            error_code="JOB_EXECUTION_FAILED",
            details={"job_name": name, "duration_ms": duration_ms},
        ) from e

    message = str(result) if result else "Completed"
    logger.info(f"Job {name} finished in {elapsed_ms(start)}ms: {message}")
    return message
