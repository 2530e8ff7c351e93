"""Price history repository using SQLAlchemy ORM.

Read-only access to the daily bars written by the ingestion job. The
module itself satisfies the engine's ``PriceHistorySource`` port.

Usage:
    from app.repositories import price_history_orm as price_history_repo

    bars = await price_history_repo.get_bars("AAPL", start_date, end_date)
    dates = await price_history_repo.list_trading_dates(start_date, end_date)
"""

from __future__ import annotations

from datetime import date

import pandas as pd
from sqlalchemy import and_, func, select

from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import PriceHistory
from app.domain.price import PriceBar


logger = get_logger("repositories.price_history_orm")


def _to_bar(row: PriceHistory) -> PriceBar:
    return PriceBar(
        symbol=row.symbol,
        date=row.date,
        open=float(row.open) if row.open is not None else None,
        high=float(row.high) if row.high is not None else None,
        low=float(row.low) if row.low is not None else None,
        close=float(row.close),
        adj_close=float(row.adj_close) if row.adj_close is not None else None,
        volume=row.volume,
    )


async def get_bars(
    symbol: str,
    date_from: date,
    date_to: date,
) -> list[PriceBar]:
    """Get bars for a symbol within date range.

    Args:
        symbol: Stock ticker symbol
        date_from: Start date (inclusive)
        date_to: End date (inclusive)

    Returns:
        PriceBar list ordered by date ascending
    """
    async with get_session() as session:
        result = await session.execute(
            select(PriceHistory)
            .where(
                and_(
                    PriceHistory.symbol == symbol.upper(),
                    PriceHistory.date >= date_from,
                    PriceHistory.date <= date_to,
                )
            )
            .order_by(PriceHistory.date.asc())
        )
        return [_to_bar(row) for row in result.scalars().all()]


async def list_trading_dates(date_from: date, date_to: date) -> list[date]:
    """Distinct dates with at least one bar in range, newest first."""
    async with get_session() as session:
        result = await session.execute(
            select(PriceHistory.date)
            .where(
                and_(
                    PriceHistory.date >= date_from,
                    PriceHistory.date <= date_to,
                )
            )
            .distinct()
            .order_by(PriceHistory.date.desc())
        )
        return [row[0] for row in result.all()]


async def get_window_summary(date_from: date, date_to: date) -> pd.DataFrame:
    """Per-symbol aggregates over the window, computed in SQL.

    Columns: symbol, days, min_close, max_close, avg_dollar_volume.
    Missing or negative volumes count as zero dollar volume.
    """
    dollar_volume = func.greatest(
        func.coalesce(PriceHistory.volume, 0) * PriceHistory.close, 0
    )
    async with get_session() as session:
        result = await session.execute(
            select(
                PriceHistory.symbol,
                func.count(func.distinct(PriceHistory.date)).label("days"),
                func.min(PriceHistory.close).label("min_close"),
                func.max(PriceHistory.close).label("max_close"),
                func.avg(dollar_volume).label("avg_dollar_volume"),
            )
            .where(
                and_(
                    PriceHistory.date >= date_from,
                    PriceHistory.date <= date_to,
                )
            )
            .group_by(PriceHistory.symbol)
        )
        rows = result.all()

    df = pd.DataFrame(
        [
            {
                "symbol": row.symbol,
                "days": int(row.days),
                "min_close": float(row.min_close),
                "max_close": float(row.max_close),
                "avg_dollar_volume": float(row.avg_dollar_volume or 0),
            }
            for row in rows
        ],
        columns=["symbol", "days", "min_close", "max_close", "avg_dollar_volume"],
    )
    logger.debug(f"Window summary {date_from}..{date_to}: {len(df)} symbols")
    return df
