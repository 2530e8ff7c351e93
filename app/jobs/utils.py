"""Shared utilities for job definitions."""

from __future__ import annotations

import time
from typing import Any

from app.core.logging import get_logger


logger = get_logger("jobs.utils")


def log_job_success(job_name: str, message: str, **metrics: Any) -> None:
    """Log a structured job success message with metrics.

    Args:
        job_name: Name of the job (e.g., "momentum_daily")
        message: Human-readable summary message
        **metrics: Key-value pairs of metrics to include in structured log

    Example:
        log_job_success("momentum_daily", "Scored 42 instruments",
            records_written=42, skipped=3, duration_ms=1234)
    """
    log_data = {
        "job": job_name,
        "status": "success",
        **metrics,
    }

    # "job_name completed: message | k=v ..." for text logs, fields for JSON
    metrics_str = " ".join(f"{k}={v}" for k, v in metrics.items())
    logger.info(f"{job_name} completed: {message} | {metrics_str}", extra={"extra_fields": log_data})


def job_timer() -> float:
    """Start a job timer (``time.monotonic()``)."""
    return time.monotonic()


def elapsed_ms(start: float) -> int:
    """Milliseconds since ``start``."""
    return int((time.monotonic() - start) * 1000)
