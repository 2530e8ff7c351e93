"""
Fundamentals default and outlier-capping policy.

Providers return whatever they have; the engine decides what gets stored.
"""

from __future__ import annotations

import math
from typing import Optional

from app.core.logging import get_logger
from app.domain.fundamentals import FundamentalsData, FundamentalsSnapshot

from .config import LIMITS, MomentumLimits


logger = get_logger("quant_engine.fundamentals")


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def cap_ratio(
    value: float,
    outlier: float,
    valid: tuple[float, float],
    cap: float,
) -> float:
    """Replace outliers (above ``outlier``) and values outside ``valid`` with ``cap``."""
    low, high = valid
    if value > outlier or value < low or value > high:
        return cap
    return value


def resolve_fundamentals(
    data: Optional[FundamentalsData],
    limits: MomentumLimits = LIMITS,
) -> FundamentalsSnapshot:
    """
    Apply defaults and caps to provider data.

    ``data`` is None when the provider had nothing or failed. Any missing
    or non-finite field falls back to its default and marks the snapshot
    as defaulted.
    """
    revenue_growth = _finite(data.revenue_growth) if data else None
    debt_to_equity = _finite(data.debt_to_equity) if data else None
    price_to_book = _finite(data.price_to_book) if data else None

    defaulted = revenue_growth is None or debt_to_equity is None or price_to_book is None

    if revenue_growth is None:
        revenue_growth = limits.default_revenue_growth

    if debt_to_equity is None:
        debt_to_equity = limits.default_debt_to_equity
    else:
        debt_to_equity = cap_ratio(
            debt_to_equity,
            limits.debt_to_equity_outlier,
            limits.debt_to_equity_valid,
            limits.debt_to_equity_cap,
        )

    if price_to_book is None:
        price_to_book = limits.default_price_to_book
    else:
        price_to_book = cap_ratio(
            price_to_book,
            limits.price_to_book_outlier,
            limits.price_to_book_valid,
            limits.price_to_book_cap,
        )

    if defaulted:
        symbol = data.symbol if data else "?"
        logger.debug(f"{symbol}: fundamentals fell back to defaults")

    decimals = limits.ratio_decimals
    return FundamentalsSnapshot(
        revenue_growth=round(revenue_growth, decimals),
        debt_to_equity=round(debt_to_equity, decimals),
        price_to_book=round(price_to_book, decimals),
        defaulted=defaulted,
    )
