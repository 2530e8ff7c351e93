"""
Momentum Recomputation Controller.

Orchestrates one evaluation date:

1. Resolve the trading calendar for [start, end]
2. Screen candidates (price band, liquidity, completeness)
3. Per candidate, concurrently:
   - compute 1M / 3M / 6M period metrics in parallel
   - compute RSI and six-month change over the longest horizon
   - fetch fundamentals (bounded concurrency) and apply policy
   - score with the absolute strategy
4. Swap the staged cross-section into the store in one atomic replace

Per-instrument shortfalls become SkipReason entries in the returned
BatchResult; only calendar, screening and persistence failures abort
the run. Nothing is written until every instrument has been processed,
so a cancelled or failed run leaves the previous cross-section intact.
"""

from __future__ import annotations

import asyncio
import time
from datetime import date
from typing import Optional, Union

from app.core.exceptions import (
    ExternalProviderError,
    InsufficientCalendarData,
    InsufficientData,
    PersistenceError,
    RecomputationCancelled,
)
from app.core.logging import bind_evaluation_date, get_logger
from app.domain.fundamentals import FundamentalsSnapshot
from app.domain.price import bars_to_frame

from .calendar import resolve_calendar
from .candidates import filter_candidates
from .config import LIMITS, MomentumLimits
from .fundamentals import resolve_fundamentals
from .indicators import compute_rsi
from .normalization import compute_scores
from .period_metrics import compute_period_metrics, horizon_start, six_month_change
from .ports import FundamentalsSource, MomentumStore, PriceHistorySource
from .types import BatchResult, Candidate, MomentumRecord, SkipCode, SkipReason


logger = get_logger("quant_engine.recompute")

_Outcome = Union[MomentumRecord, SkipReason]


class RecomputationController:
    """Computes and persists the momentum cross-section for an evaluation date."""

    def __init__(
        self,
        prices: PriceHistorySource,
        fundamentals: FundamentalsSource,
        store: MomentumStore,
        limits: MomentumLimits = LIMITS,
        fundamentals_concurrency: int = 4,
        instrument_concurrency: int = 8,
    ):
        if fundamentals_concurrency < 1 or instrument_concurrency < 1:
            raise ValueError("concurrency bounds must be at least 1")
        self.prices = prices
        self.fundamentals = fundamentals
        self.store = store
        self.limits = limits
        self._fundamentals_concurrency = fundamentals_concurrency
        self._instrument_concurrency = instrument_concurrency

    async def run(
        self,
        start: date,
        end: date,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Recompute the cross-section for ``end``.

        Raises:
            InsufficientCalendarData: too few trading days; nothing written
            ExternalProviderError: price history unavailable for calendar
                resolution or screening
            RecomputationCancelled: ``cancel_event`` was set; nothing written
            PersistenceError: the atomic replace failed; prior state kept
        """
        with bind_evaluation_date(end):
            return await self._run(start, end, cancel_event)

    async def _run(
        self,
        start: date,
        end: date,
        cancel_event: Optional[asyncio.Event],
    ) -> BatchResult:
        job_start = time.monotonic()
        evaluation_date = end
        limits = self.limits

        try:
            window = await resolve_calendar(self.prices, start, end, limits)
            summary = await self.prices.get_window_summary(window.first_date, window.last_date)
        except InsufficientCalendarData:
            raise
        except Exception as e:
            logger.error(f"Price history unavailable for {start}..{end}: {e}")
            raise ExternalProviderError("price_history", None, e) from e

        candidates = filter_candidates(summary, window.day_count, limits)

        instrument_sem = asyncio.Semaphore(self._instrument_concurrency)
        fundamentals_sem = asyncio.Semaphore(self._fundamentals_concurrency)

        tasks = [
            asyncio.create_task(
                self._process(c, evaluation_date, instrument_sem, fundamentals_sem, cancel_event)
            )
            for c in candidates
        ]
        try:
            outcomes: list[_Outcome] = list(await asyncio.gather(*tasks)) if tasks else []
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if cancel_event is not None and cancel_event.is_set():
            raise RecomputationCancelled(f"Recomputation for {evaluation_date} cancelled")

        staged = sorted(
            (o for o in outcomes if isinstance(o, MomentumRecord)),
            key=lambda r: (-r.final_score, r.symbol),
        )
        skipped = tuple(o for o in outcomes if isinstance(o, SkipReason))
        defaulted = tuple(sorted(r.symbol for r in staged if r.fundamentals.defaulted))

        try:
            stored = await self.store.replace_records(evaluation_date, staged)
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Replace of {evaluation_date} cross-section failed: {e}")
            raise PersistenceError(
                message=f"Failed to store momentum records for {evaluation_date}",
                details={"evaluation_date": evaluation_date.isoformat()},
            ) from e

        duration_ms = int((time.monotonic() - job_start) * 1000)
        result = BatchResult(
            evaluation_date=evaluation_date,
            window=window,
            candidates=len(candidates),
            records=tuple(stored),
            skipped=skipped,
            defaulted_fundamentals=defaulted,
            duration_ms=duration_ms,
        )
        logger.info(
            f"Momentum cross-section {evaluation_date}: {result.records_written} written, "
            f"{len(skipped)} skipped of {len(candidates)} candidates in {duration_ms}ms",
            extra={"extra_fields": result.to_dict()},
        )
        return result

    async def _process(
        self,
        candidate: Candidate,
        evaluation_date: date,
        instrument_sem: asyncio.Semaphore,
        fundamentals_sem: asyncio.Semaphore,
        cancel_event: Optional[asyncio.Event],
    ) -> _Outcome:
        symbol = candidate.symbol
        async with instrument_sem:
            if cancel_event is not None and cancel_event.is_set():
                raise RecomputationCancelled(f"Cancelled before {symbol}")
            try:
                return await self._score_instrument(
                    symbol, evaluation_date, fundamentals_sem
                )
            except InsufficientData as e:
                code = SkipCode.SCREENED_OUT if isinstance(e, _ScreenedOut) else SkipCode.NO_HORIZON_DATA
                skip = SkipReason(symbol, code, str(e))
            except ExternalProviderError as e:
                skip = SkipReason(symbol, SkipCode.PRICE_SOURCE_ERROR, str(e))
            except (ValueError, ArithmeticError, KeyError) as e:
                logger.warning(f"Unexpected failure scoring {symbol}: {e}")
                skip = SkipReason(symbol, SkipCode.UNEXPECTED_ERROR, str(e))
            logger.debug(f"Skipping {symbol}: {skip.code.value} ({skip.detail})")
            return skip

    async def _score_instrument(
        self,
        symbol: str,
        evaluation_date: date,
        fundamentals_sem: asyncio.Semaphore,
    ) -> MomentumRecord:
        limits = self.limits
        horizons = limits.horizons_months

        frames = await asyncio.gather(
            *(self._horizon_bars(symbol, h, evaluation_date) for h in horizons),
            return_exceptions=True,
        )
        for outcome in frames:
            if isinstance(outcome, BaseException):
                raise outcome

        metrics = {}
        missing = []
        for horizon, frame_bars in zip(horizons, frames):
            period = compute_period_metrics(frame_bars, symbol, limits)
            if period is None:
                missing.append(f"{horizon}M")
            else:
                metrics[horizon] = period
        if missing:
            raise InsufficientData(f"fewer than {limits.min_bars_per_horizon} bars for {', '.join(missing)}")

        longest = metrics[limits.longest_horizon]
        self._apply_screens(longest.return_rate, longest.sortino_ratio)

        longest_frame = bars_to_frame(frames[horizons.index(limits.longest_horizon)])
        rsi = compute_rsi(longest_frame["close"], limits)
        change = six_month_change(longest_frame, limits.price_decimals)

        snapshot = await self._fundamentals(symbol, fundamentals_sem)

        scores = compute_scores(
            metrics,
            rsi=rsi,
            revenue_growth=snapshot.revenue_growth,
            debt_to_equity=snapshot.debt_to_equity,
            price_to_book=snapshot.price_to_book,
            limits=limits,
        )
        return MomentumRecord(
            evaluation_date=evaluation_date,
            symbol=symbol,
            metrics=metrics,
            rsi=rsi,
            six_month_change=change,
            fundamentals=snapshot,
            scores=scores,
        )

    async def _horizon_bars(self, symbol: str, months: int, end: date):
        try:
            return await self.prices.get_bars(symbol, horizon_start(end, months), end)
        except Exception as e:
            raise ExternalProviderError("price_history", symbol, e) from e

    def _apply_screens(self, return_rate: float, sortino: float) -> None:
        limits = self.limits
        if limits.min_return_rate is not None and return_rate < limits.min_return_rate:
            raise _ScreenedOut(
                f"{limits.longest_horizon}M return {return_rate} below {limits.min_return_rate}"
            )
        if limits.min_sortino_ratio is not None and sortino <= limits.min_sortino_ratio:
            raise _ScreenedOut(
                f"{limits.longest_horizon}M sortino {sortino} at or below {limits.min_sortino_ratio}"
            )

    async def _fundamentals(
        self,
        symbol: str,
        fundamentals_sem: asyncio.Semaphore,
    ) -> FundamentalsSnapshot:
        async with fundamentals_sem:
            try:
                data = await self.fundamentals.get_fundamentals(symbol)
            except Exception as e:
                logger.warning(f"{symbol}: fundamentals unavailable, using defaults: {e}")
                return resolve_fundamentals(None, self.limits)

        if data is None:
            logger.warning(f"{symbol}: no fundamentals, using defaults")
        return resolve_fundamentals(data, self.limits)


class _ScreenedOut(InsufficientData):
    """Instrument failed an optional return/Sortino screen."""
