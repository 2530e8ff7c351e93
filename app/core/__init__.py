"""Core infrastructure: settings, logging, exceptions, rate limiting."""

from .config import settings
from .exceptions import (
    AppException,
    BadRequestError,
    ExternalProviderError,
    ExternalServiceError,
    InputValidationError,
    InsufficientCalendarData,
    InsufficientData,
    MomentumEngineError,
    NotFoundError,
    PersistenceError,
    RecomputationCancelled,
    RecomputationTimeout,
)


__all__ = [
    "AppException",
    "BadRequestError",
    "ExternalProviderError",
    "ExternalServiceError",
    "InputValidationError",
    "InsufficientCalendarData",
    "InsufficientData",
    "MomentumEngineError",
    "NotFoundError",
    "PersistenceError",
    "RecomputationCancelled",
    "RecomputationTimeout",
    "settings",
]
