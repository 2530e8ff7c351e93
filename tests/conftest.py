"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import gc
import warnings
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import AsyncGenerator, Generator, Optional, Sequence

import pandas as pd
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from app.domain.fundamentals import FundamentalsData
from app.domain.price import PriceBar
from app.quant_engine.types import EvaluationDateInfo, MomentumRecord

# Configure asyncio
pytest_plugins = ["pytest_asyncio"]


def _force_cleanup():
    """Force cleanup of pending async resources."""
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=ResourceWarning)
        gc.collect()


@pytest.fixture(scope="function", autouse=True)
def reset_singletons():
    """Reset module-level engine, provider and limiter singletons around each test."""
    import app.core.rate_limiter as rate_limiter
    import app.database.connection as db_conn
    import app.jobs.scheduler as scheduler
    import app.services.data_providers.yfinance_service as yf_service

    def _reset():
        db_conn._engine = None
        db_conn._session_factory = None
        yf_service._instance = None
        rate_limiter._limiters.clear()
        scheduler._scheduler = None

    _reset()
    yield
    _reset()
    _force_cleanup()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    from app.api.app import create_api_app

    app = create_api_app()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    _force_cleanup()


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for the FastAPI app."""
    from app.api.app import create_api_app

    app = create_api_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Price bar builders
# ============================================================================

EVALUATION_DATE = date(2024, 7, 1)


def trading_days(end: date = EVALUATION_DATE, count: int = 140) -> list[date]:
    """``count`` business days ending on ``end``."""
    return [d.date() for d in pd.bdate_range(end=end, periods=count)]


def make_bars(
    symbol: str,
    closes: Sequence[float],
    end: date = EVALUATION_DATE,
    volume: Optional[int] = 10_000_000,
    adj_factor: Optional[float] = 1.0,
) -> list[PriceBar]:
    """One bar per close on consecutive business days ending at ``end``."""
    days = trading_days(end, len(closes))
    return [
        PriceBar(
            symbol=symbol,
            date=d,
            close=float(c),
            adj_close=float(c) * adj_factor if adj_factor is not None else None,
            volume=volume,
        )
        for d, c in zip(days, closes)
    ]


def trending_closes(start: float, daily_step: float, count: int = 140) -> list[float]:
    """Saw-tooth trend: two steps up, one half step down."""
    closes = [start]
    for i in range(1, count):
        step = -daily_step / 2 if i % 3 == 0 else daily_step
        closes.append(round(closes[-1] + step, 4))
    return closes


# ============================================================================
# In-memory collaborators
# ============================================================================


class FakePriceHistory:
    """PriceHistorySource over a dict of bars per symbol."""

    def __init__(
        self,
        bars: dict[str, list[PriceBar]],
        failing: Optional[set[str]] = None,
        summary: Optional[pd.DataFrame] = None,
        unavailable: bool = False,
    ):
        self.bars = bars
        self.failing = failing or set()
        self.summary = summary
        self.unavailable = unavailable
        self.bar_calls: list[tuple[str, date, date]] = []

    async def get_bars(self, symbol: str, date_from: date, date_to: date) -> list[PriceBar]:
        self.bar_calls.append((symbol, date_from, date_to))
        if symbol in self.failing:
            raise ConnectionError(f"price feed down for {symbol}")
        return [b for b in self.bars.get(symbol, []) if date_from <= b.date <= date_to]

    async def list_trading_dates(self, date_from: date, date_to: date) -> list[date]:
        if self.unavailable:
            raise ConnectionError("database unavailable")
        dates = {
            b.date
            for bars in self.bars.values()
            for b in bars
            if date_from <= b.date <= date_to
        }
        return sorted(dates, reverse=True)

    async def get_window_summary(self, date_from: date, date_to: date) -> pd.DataFrame:
        if self.summary is not None:
            return self.summary
        return window_summary(self.bars, date_from, date_to)


def window_summary(
    bars: dict[str, list[PriceBar]],
    date_from: date,
    date_to: date,
) -> pd.DataFrame:
    """Same aggregates the SQL summary query produces."""
    rows = []
    for symbol, symbol_bars in bars.items():
        in_window = [b for b in symbol_bars if date_from <= b.date <= date_to]
        if not in_window:
            continue
        dollar = [max((b.volume or 0) * b.close, 0.0) for b in in_window]
        rows.append({
            "symbol": symbol,
            "days": len({b.date for b in in_window}),
            "min_close": min(b.close for b in in_window),
            "max_close": max(b.close for b in in_window),
            "avg_dollar_volume": sum(dollar) / len(dollar),
        })
    return pd.DataFrame(
        rows, columns=["symbol", "days", "min_close", "max_close", "avg_dollar_volume"]
    )


class FakeFundamentals:
    """FundamentalsSource returning canned data; exceptions are raised."""

    def __init__(self, data: Optional[dict[str, object]] = None):
        self.data = data or {}
        self.calls: list[str] = []

    async def get_fundamentals(self, symbol: str) -> Optional[FundamentalsData]:
        self.calls.append(symbol)
        value = self.data.get(symbol)
        if isinstance(value, Exception):
            raise value
        return value


class FakeMomentumStore:
    """MomentumStore keeping cross-sections in a dict, with timestamp carryover."""

    def __init__(self, fail_writes: bool = False):
        self.sections: dict[date, dict[str, MomentumRecord]] = {}
        self.hashes: dict[date, dict[str, str]] = {}
        self.fail_writes = fail_writes
        self.replace_calls = 0

    async def replace_records(
        self,
        evaluation_date: date,
        records: Sequence[MomentumRecord],
    ) -> list[MomentumRecord]:
        self.replace_calls += 1
        if self.fail_writes:
            raise RuntimeError("disk full")

        now = datetime.now(UTC)
        previous = self.sections.get(evaluation_date, {})
        previous_hashes = self.hashes.get(evaluation_date, {})
        stored = []
        for record in records:
            prev = previous.get(record.symbol)
            content_hash = record.content_hash()
            created_at = prev.created_at if prev else now
            unchanged = prev is not None and previous_hashes.get(record.symbol) == content_hash
            updated_at = prev.updated_at if unchanged else now
            stored.append(replace(record, created_at=created_at, updated_at=updated_at))

        self.sections[evaluation_date] = {r.symbol: r for r in stored}
        self.hashes[evaluation_date] = {r.symbol: r.content_hash() for r in stored}
        return stored

    async def delete_records(self, evaluation_date: date) -> int:
        removed = self.sections.pop(evaluation_date, {})
        self.hashes.pop(evaluation_date, None)
        return len(removed)

    async def query_records(
        self,
        evaluation_date: date,
        limit: Optional[int] = None,
    ) -> list[MomentumRecord]:
        records = sorted(
            self.sections.get(evaluation_date, {}).values(),
            key=lambda r: (-r.final_score, r.symbol),
        )
        return records[:limit] if limit is not None else records

    async def list_evaluation_dates(self) -> list[EvaluationDateInfo]:
        infos = []
        for eval_date, section in self.sections.items():
            if not section:
                continue
            infos.append(
                EvaluationDateInfo(
                    evaluation_date=eval_date,
                    first_date=min(r.metrics[6].first_date for r in section.values()),
                    last_date=max(r.metrics[6].last_date for r in section.values()),
                    record_count=len(section),
                )
            )
        return sorted(infos, key=lambda i: i.evaluation_date, reverse=True)


# ============================================================================
# Universe fixtures
# ============================================================================


@pytest.fixture
def universe_bars() -> dict[str, list[PriceBar]]:
    """Three liquid, in-band symbols with different trends plus two screened-out ones."""
    return {
        "AAA": make_bars("AAA", trending_closes(100.0, 0.8)),
        "BBB": make_bars("BBB", trending_closes(200.0, 0.2)),
        "CCC": make_bars("CCC", trending_closes(300.0, -0.3)),
        # Below the price band
        "PENNY": make_bars("PENNY", trending_closes(5.0, 0.01), volume=500_000_000),
        # Illiquid
        "THIN": make_bars("THIN", trending_closes(100.0, 0.1), volume=1_000),
    }


@pytest.fixture
def fundamentals_data() -> dict[str, object]:
    return {
        "AAA": FundamentalsData(symbol="AAA", revenue_growth=0.25, debt_to_equity=0.4, price_to_book=3.0),
        "BBB": FundamentalsData(symbol="BBB", revenue_growth=0.05, debt_to_equity=120.0, price_to_book=8.0),
        "CCC": None,
    }


@pytest.fixture
def price_source(universe_bars) -> FakePriceHistory:
    return FakePriceHistory(universe_bars)


@pytest.fixture
def fundamentals_source(fundamentals_data) -> FakeFundamentals:
    return FakeFundamentals(fundamentals_data)


@pytest.fixture
def momentum_store() -> FakeMomentumStore:
    return FakeMomentumStore()


@pytest.fixture
def controller(price_source, fundamentals_source, momentum_store):
    from app.quant_engine import RecomputationController

    return RecomputationController(
        prices=price_source,
        fundamentals=fundamentals_source,
        store=momentum_store,
        fundamentals_concurrency=2,
        instrument_concurrency=2,
    )
