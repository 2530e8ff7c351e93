"""Token-bucket pacing for external provider calls.

The fundamentals provider is the one call the recomputation paces: a
bucket with ``burst_size=1`` turns into a fixed ``1 / calls_per_second``
gap between calls, larger buckets allow short bursts.
"""

from __future__ import annotations

import asyncio
import time

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger("core.rate_limiter")

FUNDAMENTALS_LIMITER = "fundamentals"


class RateLimiter:
    """Async token bucket shared by every caller holding the same instance."""

    def __init__(self, name: str, calls_per_second: float = 2.0, burst_size: int = 5):
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")
        self.name = name
        self.calls_per_second = calls_per_second
        self.burst_size = burst_size
        self._tokens = float(burst_size)
        self._stamp = time.monotonic()
        self._lock: asyncio.Lock | None = None

    def _take(self) -> float:
        """Take a token if one is available; otherwise return the wait for the next."""
        now = time.monotonic()
        self._tokens = min(self.burst_size, self._tokens + (now - self._stamp) * self.calls_per_second)
        self._stamp = now
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.calls_per_second

    async def acquire(self, timeout: float = 30.0) -> bool:
        """Wait for a token. False when none frees up within ``timeout`` seconds."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        deadline = time.monotonic() + timeout

        while True:
            async with self._lock:
                wait = self._take()
            if wait == 0.0:
                return True
            if time.monotonic() + wait > deadline:
                logger.warning(f"{self.name}: no token within {timeout}s")
                return False
            await asyncio.sleep(min(wait, 0.5))

    def _available(self) -> float:
        elapsed = time.monotonic() - self._stamp
        return min(self.burst_size, self._tokens + elapsed * self.calls_per_second)

    def get_stats(self) -> dict:
        tokens = self._available()
        return {
            "name": self.name,
            "tokens_available": round(tokens, 3),
            "burst_size": self.burst_size,
            "calls_per_second": self.calls_per_second,
            "next_token_in": 0.0 if tokens >= 1.0 else round((1.0 - tokens) / self.calls_per_second, 3),
        }


_limiters: dict[str, RateLimiter] = {}


def get_rate_limiter(name: str, calls_per_second: float = 2.0, burst_size: int = 5) -> RateLimiter:
    """Named, process-wide limiter. Rate arguments only apply on first creation."""
    limiter = _limiters.get(name)
    if limiter is None:
        limiter = _limiters[name] = RateLimiter(name, calls_per_second, burst_size)
        logger.info(f"Rate limiter '{name}': {calls_per_second}/s, burst {burst_size}")
    return limiter


def get_fundamentals_limiter() -> RateLimiter:
    """Limiter for fundamentals lookups, sized from ``FUNDAMENTALS_*`` settings."""
    return get_rate_limiter(
        FUNDAMENTALS_LIMITER,
        calls_per_second=settings.fundamentals_calls_per_second,
        burst_size=settings.fundamentals_burst_size,
    )
