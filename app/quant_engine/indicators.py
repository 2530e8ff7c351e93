"""
Technical oscillator for the momentum engine.

Uses the 'ta' library for the standard Wilder RSI implementation.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import pandas as pd

from .config import LIMITS, MomentumLimits


def compute_rsi(
    closes: Sequence[float] | pd.Series,
    limits: MomentumLimits = LIMITS,
) -> float:
    """
    Latest RSI over a chronological (ascending) close series.

    Falls back to the neutral value when fewer than ``rsi_period + 1``
    closes are available, or when the result is NaN or outside [0, 100].
    """
    from ta.momentum import RSIIndicator

    series = pd.Series(closes, dtype=float).dropna().reset_index(drop=True)
    if len(series) < limits.rsi_period + 1:
        return limits.rsi_neutral

    rsi = RSIIndicator(series, window=limits.rsi_period).rsi()
    value = float(rsi.iloc[-1]) if not rsi.empty else math.nan

    if math.isnan(value) or not 0.0 <= value <= 100.0:
        return limits.rsi_neutral
    return round(value, 4)
