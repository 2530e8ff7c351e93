"""Custom exceptions and centralized exception handlers."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .config import settings
from .logging import get_logger


_error_logger = get_logger("errors")


class AppException(Exception):
    """Base application exception with structured error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.status_code = status_code or self.status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 problem+json style response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
            **({"details": self.details} if self.details else {}),
        }


class NotFoundError(AppException):
    """Resource not found."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class BadRequestError(AppException):
    """Bad request."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    message = "Bad request"


class InputValidationError(BadRequestError):
    """Malformed or out-of-order request input. Never retried."""

    error_code = "INVALID_INPUT"
    message = "Invalid input"


class ExternalServiceError(AppException):
    """External service error."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service temporarily unavailable"


class PersistenceError(AppException):
    """Write or transaction failure. The previously committed state is intact."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "PERSISTENCE_ERROR"
    message = "Storage temporarily unavailable, please retry"


class RecomputationTimeout(AppException):
    """Recomputation exceeded its time budget."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "RECOMPUTE_TIMEOUT"
    message = "Momentum recomputation timed out"


class JobError(AppException):
    """Job execution failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "JOB_ERROR"
    message = "Job execution failed"


# =============================================================================
# Engine errors (not HTTP-shaped; translated by the service layer)
# =============================================================================


class MomentumEngineError(Exception):
    """Base class for momentum engine failures."""


class InsufficientCalendarData(MomentumEngineError):
    """Too few distinct trading days in the requested window."""

    def __init__(self, found: int, required: int, start: date, end: date):
        self.found = found
        self.required = required
        self.start = start
        self.end = end
        super().__init__(
            f"Not enough trading days between {start} and {end}: {found}/{required}"
        )


class InsufficientData(MomentumEngineError):
    """Per-instrument data shortfall. Converted into a skip reason."""


class ExternalProviderError(MomentumEngineError):
    """A price or fundamentals provider failed for one instrument."""

    def __init__(self, provider: str, symbol: str | None, cause: Exception | None = None):
        self.provider = provider
        self.symbol = symbol
        self.cause = cause
        target = f" for {symbol}" if symbol else ""
        reason = f": {cause}" if cause else ""
        super().__init__(f"{provider} failed{target}{reason}")


class RecomputationCancelled(MomentumEngineError):
    """A recomputation run was aborted before its cross-section was written."""


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "unknown"


def register_exception_handlers(app: FastAPI) -> None:
    """Render AppException subclasses as problem+json; hide everything else."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            _error_logger.warning(
                f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}: {exc.message}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers={"X-Request-ID": _request_id(request)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        _error_logger.exception(
            f"Unhandled error on {request.method} {request.url.path}",
            extra={"extra_fields": {"request_id": _request_id(request), "path": request.url.path}},
        )
        body = AppException(message=str(exc) if settings.debug else None).to_dict()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body,
            headers={"X-Request-ID": _request_id(request)},
        )
