"""
YFinance fundamentals adapter.

Supplies revenue growth, debt-to-equity and price-to-book per symbol to the
momentum engine (``FundamentalsSource`` port). Only the shape of the data
matters to the engine; defaults and outlier caps are applied there.

Architecture:
- Single ThreadPoolExecutor for all blocking yfinance calls
- Injected token-bucket rate limiter (app.core.rate_limiter)
- Circuit breaker + retry with backoff (resilience)
- Short-lived in-memory cache so a re-run inside the TTL sees the same snapshot

Usage:
    from app.services.data_providers import get_yfinance_service

    service = get_yfinance_service()
    data = await service.get_fundamentals("AAPL")
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import yfinance as yf

from app.core.config import settings
from app.core.exceptions import ExternalProviderError
from app.core.logging import get_logger
from app.core.rate_limiter import RateLimiter, get_fundamentals_limiter
from app.domain.fundamentals import FundamentalsData

from .resilience import CircuitBreaker, CircuitOpenError, RetryExhaustedError, retry_async

logger = get_logger("data_providers.yfinance")

# Single shared executor for ALL yfinance calls
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yfinance")

PROVIDER = "yfinance"

# Ticker info cache TTL (seconds)
INFO_CACHE_TTL = 300


def _safe_float(value: Any) -> Optional[float]:
    """Safely convert value to float; NaN/Inf/garbage become None."""
    if value is None:
        return None
    try:
        f = float(value)
        if f != f or f == float("inf") or f == float("-inf"):
            return None
        return f
    except (ValueError, TypeError):
        return None


class YFinanceService:
    """
    Fundamentals provider backed by ``yfinance.Ticker.info``.

    Features:
    - Pacing via the injected rate limiter
    - Fail-fast circuit breaker after consecutive provider failures
    - Per-call timeout and retry on transient network errors
    """

    def __init__(
        self,
        limiter: Optional[RateLimiter] = None,
        breaker: Optional[CircuitBreaker] = None,
        timeout: float | None = None,
        retries: int | None = None,
        cache_ttl: float = INFO_CACHE_TTL,
    ):
        self._limiter = limiter
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=5, recovery_timeout=60.0, name=PROVIDER
        )
        self._timeout = timeout if timeout is not None else settings.external_api_timeout
        self._retries = retries if retries is not None else settings.external_api_retries
        self._cache_ttl = cache_ttl
        self._cache: dict[str, tuple[float, Optional[dict[str, Any]]]] = {}

    # =========================================================================
    # Memory Cache Helpers
    # =========================================================================

    def _get_cached(self, symbol: str) -> tuple[bool, Optional[dict[str, Any]]]:
        entry = self._cache.get(symbol)
        if entry is None:
            return False, None
        ts, data = entry
        if time.monotonic() - ts >= self._cache_ttl:
            del self._cache[symbol]
            return False, None
        return True, data

    def _set_cached(self, symbol: str, data: Optional[dict[str, Any]]) -> None:
        now = time.monotonic()
        expired = [s for s, (ts, _) in self._cache.items() if now - ts >= self._cache_ttl]
        for stale in expired:
            del self._cache[stale]
        self._cache[symbol] = (now, data)

    # =========================================================================
    # Blocking yfinance call (runs in thread pool)
    # =========================================================================

    def _fetch_ticker_info_sync(self, symbol: str) -> Optional[dict[str, Any]]:
        """Fetch raw ticker info from yfinance (blocking)."""
        info = yf.Ticker(symbol).info or {}
        if not info or not info.get("symbol"):
            return None
        return {
            "symbol": symbol.upper(),
            "revenueGrowth": _safe_float(info.get("revenueGrowth")),
            "debtToEquity": _safe_float(info.get("debtToEquity")),
            "priceToBook": _safe_float(info.get("priceToBook")),
        }

    async def _load_ticker_info(self, symbol: str) -> Optional[dict[str, Any]]:
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(_executor, self._fetch_ticker_info_sync, symbol),
            timeout=self._timeout,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    async def get_ticker_info(self, symbol: str) -> Optional[dict[str, Any]]:
        """
        Get the fundamentals subset of ticker info.

        Returns None when yfinance knows nothing about the symbol.

        Raises:
            ExternalProviderError: rate limit wait timed out, circuit open,
                or retries exhausted
        """
        symbol = symbol.upper()
        hit, cached = self._get_cached(symbol)
        if hit:
            logger.debug(f"Cache hit for {symbol}")
            return cached

        if self._limiter is not None and not await self._limiter.acquire(timeout=self._timeout):
            raise ExternalProviderError(PROVIDER, symbol, TimeoutError("rate limit wait timed out"))

        try:
            await self._breaker.guard()
        except CircuitOpenError as e:
            raise ExternalProviderError(PROVIDER, symbol, e) from e

        try:
            data = await retry_async(
                lambda: self._load_ticker_info(symbol),
                max_attempts=self._retries,
                base_delay=1.0,
            )
        except RetryExhaustedError as e:
            self._breaker.record_failure(e)
            raise ExternalProviderError(PROVIDER, symbol, e.last_error or e) from e
        except Exception as e:
            self._breaker.record_failure(e)
            raise ExternalProviderError(PROVIDER, symbol, e) from e

        self._breaker.record_success()
        self._set_cached(symbol, data)
        return data

    async def get_fundamentals(self, symbol: str) -> Optional[FundamentalsData]:
        """Fundamentals for ``symbol``, or None when unavailable."""
        info = await self.get_ticker_info(symbol)
        if info is None:
            logger.debug(f"No yfinance info for {symbol}")
            return None
        return FundamentalsData.from_ticker_info(symbol, info)

    def get_stats(self) -> dict[str, Any]:
        return {
            "provider": PROVIDER,
            "cached_symbols": len(self._cache),
            "circuit": self._breaker.get_stats(),
            "rate_limiter": self._limiter.get_stats() if self._limiter else None,
        }


# Singleton instance
_instance: Optional[YFinanceService] = None


def get_yfinance_service() -> YFinanceService:
    """Get singleton YFinanceService instance."""
    global _instance
    if _instance is None:
        _instance = YFinanceService(limiter=get_fundamentals_limiter())
    return _instance
