"""
Resilience patterns for the fundamentals provider.

This module provides:
1. Circuit Breaker - stop calling a provider after consecutive failures
2. Retry - exponential backoff with jitter for transient errors

Usage:
    from app.services.data_providers.resilience import CircuitBreaker, retry_async

    breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60.0, name="yfinance")

    async def fetch(symbol):
        await breaker.guard()  # Raises CircuitOpenError if open
        try:
            info = await retry_async(lambda: load_info(symbol), max_attempts=2)
        except Exception as e:
            breaker.record_failure(e)
            raise
        breaker.record_success()
        return info
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable
from enum import Enum
from typing import Any, Callable, TypeVar

from app.core.logging import get_logger

logger = get_logger("resilience")

T = TypeVar("T")


class CircuitOpenError(Exception):
    """Raised when the breaker is open and the call is refused."""

    def __init__(self, name: str, message: str = "Circuit breaker is open"):
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class RetryExhaustedError(Exception):
    """Raised when every retry attempt failed."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} retry attempts exhausted"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Fail fast once a provider has failed ``failure_threshold`` times in a row.

    After ``recovery_timeout`` seconds the breaker lets one call through
    (half-open); a success closes it again.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "circuit",
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if time.monotonic() - self._opened_at >= self.recovery_timeout:
                return CircuitState.HALF_OPEN
        return self._state

    async def guard(self) -> None:
        """Raise CircuitOpenError while the breaker is open."""
        state = self.state
        if state == CircuitState.OPEN:
            remaining = self.recovery_timeout - (time.monotonic() - (self._opened_at or 0))
            raise CircuitOpenError(
                self.name,
                f"open after {self._failure_count} failures, retry in {remaining:.1f}s",
            )
        if state == CircuitState.HALF_OPEN:
            logger.info(f"[{self.name}] Circuit half-open, allowing test request")

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info(f"[{self.name}] Circuit closed after successful call")
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None

    def record_failure(self, error: Exception | None = None) -> None:
        self._failure_count += 1
        if self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"[{self.name}] Circuit OPEN after {self._failure_count} failures: {error}"
                )
            self._state = CircuitState.OPEN
            self._opened_at = time.monotonic()
        else:
            logger.debug(f"[{self.name}] Failure {self._failure_count}/{self.failure_threshold}")

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
        }


# =============================================================================
# Retry with Exponential Backoff
# =============================================================================

# Transient errors worth another attempt
DEFAULT_RETRY_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    jitter: float = 0.5,
    retry_on: tuple[type[Exception], ...] = DEFAULT_RETRY_EXCEPTIONS,
) -> T:
    """
    Call ``func`` until it succeeds or ``max_attempts`` is reached.

    Delay doubles from ``base_delay`` up to ``max_delay``, scaled by a
    random factor in [1 - jitter, 1 + jitter]. Exceptions outside
    ``retry_on`` propagate immediately.

    Raises:
        RetryExhaustedError: every attempt failed with a retryable error
    """
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except retry_on as e:
            last_error = e
            if attempt >= max_attempts:
                break

            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            if jitter > 0:
                delay *= 1 + (random.random() - 0.5) * 2 * jitter
            logger.debug(f"Attempt {attempt}/{max_attempts} failed ({e}), retrying in {delay:.2f}s")
            await asyncio.sleep(delay)

    raise RetryExhaustedError(max_attempts, last_error) from last_error
