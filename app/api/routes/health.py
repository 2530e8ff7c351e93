"""Health endpoints: database reachability, scheduler and freshest ranking."""

from __future__ import annotations

from datetime import UTC, date, datetime

from fastapi import APIRouter

from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.logging import get_logger
from app.database.connection import db_healthcheck
from app.jobs import get_scheduler
from app.repositories import momentum_records_orm as momentum_repo
from app.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


async def _latest_evaluation_date() -> date | None:
    try:
        dates = await momentum_repo.list_evaluation_dates()
    except PersistenceError:
        return None
    return dates[0].evaluation_date if dates else None


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Database status, scheduler state and the newest stored ranking.",
)
async def health_check() -> HealthResponse:
    database_ok = await db_healthcheck()
    scheduler = get_scheduler()

    return HealthResponse(
        status="healthy" if database_ok else "unhealthy",
        version=settings.app_version,
        timestamp=datetime.now(UTC),
        checks={"database": database_ok},
        scheduler_running=bool(scheduler and scheduler.running),
        next_runs=scheduler.next_run_times() if scheduler and scheduler.running else {},
        latest_evaluation_date=await _latest_evaluation_date() if database_ok else None,
    )


@router.get("/live", summary="Liveness check")
async def liveness_check() -> dict:
    """Process is up; no dependency checks."""
    return {"status": "alive"}
