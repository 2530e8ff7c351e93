"""
Collaborator ports consumed by the momentum engine.

The engine never imports repositories or providers directly; the
service layer wires the SQLAlchemy/yfinance implementations in, tests
wire in-memory ones.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

import pandas as pd

from app.domain.fundamentals import FundamentalsData
from app.domain.price import PriceBar

from .types import EvaluationDateInfo, MomentumRecord


# Columns returned by PriceHistorySource.get_window_summary
WINDOW_SUMMARY_COLUMNS = ("symbol", "days", "min_close", "max_close", "avg_dollar_volume")


class PriceHistorySource(Protocol):
    """Read-only access to daily price bars."""

    async def get_bars(
        self,
        symbol: str,
        date_from: date,
        date_to: date,
    ) -> Sequence[PriceBar]:
        """Bars for one symbol in [date_from, date_to], ascending by date."""
        ...

    async def list_trading_dates(
        self,
        date_from: date,
        date_to: date,
    ) -> Sequence[date]:
        """Distinct dates with at least one bar in range, descending."""
        ...

    async def get_window_summary(
        self,
        date_from: date,
        date_to: date,
    ) -> pd.DataFrame:
        """Per-symbol aggregates over the window (see WINDOW_SUMMARY_COLUMNS)."""
        ...


class FundamentalsSource(Protocol):
    """Growth, leverage and valuation ratios per instrument."""

    async def get_fundamentals(self, symbol: str) -> Optional[FundamentalsData]:
        """Return ratios, or None when the provider has nothing."""
        ...


class MomentumStore(Protocol):
    """Persistence of momentum cross-sections."""

    async def replace_records(
        self,
        evaluation_date: date,
        records: Sequence[MomentumRecord],
    ) -> list[MomentumRecord]:
        """Atomically swap the date's cross-section; returns stored records."""
        ...

    async def delete_records(self, evaluation_date: date) -> int:
        ...

    async def query_records(
        self,
        evaluation_date: date,
        limit: Optional[int] = None,
    ) -> list[MomentumRecord]:
        """Stored records ordered by final score desc, symbol asc."""
        ...

    async def list_evaluation_dates(self) -> list[EvaluationDateInfo]:
        ...
