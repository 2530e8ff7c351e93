"""
Per-horizon return and downside-risk statistics.

Horizon windows are independent: each call works on its own bar slice and
shares nothing with the others, so callers may compute them concurrently.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date
from typing import Any, Optional

import numpy as np
import pandas as pd

from app.core.logging import get_logger
from app.domain.price import PriceBar, bars_to_frame

from .config import LIMITS, MomentumLimits
from .types import PeriodMetrics


logger = get_logger("quant_engine.period_metrics")


def safe_float(value: Any, default: float = 0.0) -> float:
    """Convert to a finite float, substituting ``default`` for NaN/Inf/None."""
    if value is None:
        return default
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(f) or math.isinf(f):
        return default
    return f


def horizon_start(end: date, months: int) -> date:
    """end minus N calendar months (month-end clipped)."""
    return (pd.Timestamp(end) - pd.DateOffset(months=months)).date()


def daily_returns(closes: pd.Series) -> pd.Series:
    """r_i = close_i / close_{i-1} - 1 for consecutive bars."""
    returns = closes / closes.shift(1) - 1.0
    return returns.iloc[1:].replace([np.inf, -np.inf], np.nan).dropna()


def downside_deviation(returns: pd.Series) -> float:
    """
    Root mean square of the negative returns only.

    The mean is taken over the count of negative returns, not over all
    returns. No negative returns means zero deviation.
    """
    negative = returns[returns < 0]
    if negative.empty:
        return 0.0
    return float(np.sqrt(np.mean(np.square(negative.to_numpy()))))


def sortino_ratio(returns: pd.Series, cap: float = LIMITS.sortino_cap) -> float:
    """
    mean(returns) / downside deviation.

    With zero downside deviation the result is the bounded sentinel
    +cap when the mean is >= 0, else -cap.
    """
    if returns.empty:
        return 0.0
    mean = float(returns.mean())
    dd = downside_deviation(returns)
    if dd <= 0 or not math.isfinite(dd):
        return cap if mean >= 0 else -cap
    ratio = mean / dd
    if not math.isfinite(ratio):
        return cap if mean >= 0 else -cap
    return ratio


def return_rate(first: float, last: float) -> float:
    """(last - first) / first; 0 when the first close is not positive."""
    if not first or first <= 0 or not math.isfinite(first) or not math.isfinite(last):
        return 0.0
    return (last - first) / first


def average_dollar_volume(frame: pd.DataFrame, symbol: str = "") -> int:
    """
    mean(volume x close) over the window, rounded to an integer.

    Rows whose dollar volume is NaN or negative are coerced to 0.
    """
    if frame.empty:
        return 0
    dollar = frame["volume"] * frame["close"]
    bad = dollar.isna() | (dollar < 0) | np.isinf(dollar)
    if bad.any():
        logger.warning(
            f"{symbol}: coerced {int(bad.sum())} NaN/negative dollar volume rows to 0"
        )
        dollar = dollar.where(~bad, 0.0)
    return int(round(float(dollar.mean())))


def six_month_change(frame: pd.DataFrame, decimals: int = LIMITS.price_decimals) -> float:
    """Percent change of the raw close over the window."""
    if frame.empty:
        return 0.0
    first = safe_float(frame["close"].iloc[0])
    last = safe_float(frame["close"].iloc[-1])
    if first <= 0:
        return 0.0
    return round((last / first - 1.0) * 100.0, decimals)


def compute_period_metrics(
    bars: Sequence[PriceBar],
    symbol: str = "",
    limits: MomentumLimits = LIMITS,
) -> Optional[PeriodMetrics]:
    """
    Compute PeriodMetrics for one horizon's bars.

    Returns None ("no data") when fewer than ``limits.min_bars_per_horizon``
    bars are available.
    """
    frame = bars_to_frame(bars)
    if len(frame) < limits.min_bars_per_horizon:
        logger.debug(f"{symbol}: {len(frame)} bars in horizon, need {limits.min_bars_per_horizon}")
        return None

    adjusted = frame["adj_close"].astype(float)
    first_adj = safe_float(adjusted.iloc[0])
    last_adj = safe_float(adjusted.iloc[-1])

    returns = daily_returns(adjusted)
    decimals = limits.ratio_decimals

    return PeriodMetrics(
        first_date=frame.index[0],
        last_date=frame.index[-1],
        first_close=round(first_adj, limits.price_decimals),
        last_close=round(last_adj, limits.price_decimals),
        return_rate=round(return_rate(first_adj, last_adj), decimals),
        sortino_ratio=round(safe_float(sortino_ratio(returns, limits.sortino_cap)), decimals),
        avg_dollar_volume=average_dollar_volume(frame, symbol),
    )
