"""Momentum job definitions.

Contains the scheduled recompute of the momentum cross-section
(momentum_daily). The evaluation date is today (UTC); the window
reaches back over the longest horizon.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from app.core.config import settings
from app.core.exceptions import InsufficientCalendarData
from app.core.logging import get_logger
from app.quant_engine.period_metrics import horizon_start

from ..registry import register_job
from ..utils import elapsed_ms, job_timer, log_job_success


logger = get_logger("jobs.quant")


# =============================================================================
# MOMENTUM DAILY - Recompute cross-section
# =============================================================================


@register_job(
    "momentum_daily",
    "Recompute momentum ranking after the US close",
    cron_setting="momentum_daily_cron",
)
async def momentum_daily_job() -> str:
    """
    Recompute momentum scores for today's evaluation date.

    Schedule: weekdays after US close (settings.momentum_daily_cron)
    """
    from app.services.momentum_service import build_controller

    job_start = job_timer()
    end = datetime.now(UTC).date()
    controller = build_controller()
    start = horizon_start(end, controller.limits.longest_horizon)

    try:
        result = await asyncio.wait_for(
            controller.run(start, end),
            timeout=settings.recompute_timeout_seconds,
        )
    except InsufficientCalendarData as e:
        logger.warning(f"momentum_daily: skipped {end}: {e}")
        return f"Skipped: only {e.found} trading days between {e.start} and {e.end}"

    message = f"Scored {result.records_written} instruments for {end}"
    log_job_success(
        "momentum_daily",
        message,
        evaluation_date=end.isoformat(),
        candidates=result.candidates,
        records_written=result.records_written,
        skipped=len(result.skipped),
        defaulted_fundamentals=result.defaulted_fundamentals,
        duration_ms=elapsed_ms(job_start),
    )
    return message
