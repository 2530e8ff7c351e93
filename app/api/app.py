"""FastAPI application for the momentum API (mounted under /api)."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, request_id_var
from app.database.connection import close_database, init_database
from app.schemas.common import ErrorResponse

from .routes import health, momentum


logger = get_logger("api")

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse, "description": description}
    for code, description in (
        (400, "Invalid dates or weights"),
        (404, "No stored ranking for the date"),
        (422, "Malformed request body"),
        (503, "Price history or storage unavailable"),
        (504, "Recomputation timed out"),
    )
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Standalone lifespan; when mounted, app.main owns startup and shutdown."""
    await init_database()
    yield
    await close_database()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, expose it to logs, and log one line per request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        duration_ms = int((time.monotonic() - started) * 1000)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
            },
        )
        return response


def create_api_app() -> FastAPI:
    """Build the API app: momentum and health routers, error handlers, CORS."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-horizon momentum scoring and ranking API",
        root_path=settings.root_path,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        responses=_ERROR_RESPONSES,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    register_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(momentum.router, tags=["Momentum"])
    return app
