"""Service entry point: logging, database engine, scheduler and the /api mount."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.app import create_api_app
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.database.connection import close_database, init_database
from app.jobs import definitions as job_definitions
from app.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})",
        extra={"extra_fields": {"jobs": job_definitions.list_job_names()}},
    )

    # Tables come from alembic migrations; only the pool is created here
    await init_database()

    if settings.scheduler_enabled:
        scheduler = await start_scheduler()
        for name, next_run in scheduler.next_run_times().items():
            logger.info(f"{name}: next run {next_run}")

    try:
        yield
    finally:
        await stop_scheduler()
        await close_database()
        logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Root app; everything public lives under /api."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.mount("/api", create_api_app())

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "health": "/api/health",
            "ranking": "/api/momentum/ranking",
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point (``momentum-ranker``)."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    run()
