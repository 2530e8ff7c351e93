"""
Signal normalization and scoring.

Two strategies:

- Absolute: every signal is clamped into a fixed domain and rescaled to
  [0, 1]; per-horizon weighted sums are clamped and combined into the
  bounded composite score that is persisted.
- Relative: every signal is min-max normalized against the current
  cross-section and combined with caller-supplied weights. Scores are
  NOT bounded; weights need not sum to 1.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from .config import LIMITS, SIGNALS, MomentumLimits
from .types import HorizonScores, PeriodMetrics, RelativeScore


# Lower is better for these signals
INVERTED_SIGNALS = frozenset({"debt_to_equity", "price_to_book"})


def clamp(value: float, low: float, high: float) -> float:
    if np.isnan(value):
        return low
    return max(low, min(high, value))


# =============================================================================
# Absolute strategy
# =============================================================================


def rescale(value: float, domain: tuple[float, float]) -> float:
    """Clamp into ``domain`` then map linearly onto [0, 1]."""
    low, high = domain
    return (clamp(value, low, high) - low) / (high - low)


def inverse_ratio(value: float, floor: float = LIMITS.ratio_floor) -> float:
    """min(1, 1 / max(floor, x)); smaller ratios score higher."""
    return min(1.0, 1.0 / max(floor, value))


def normalize_absolute(
    return_rate: float,
    sortino_ratio: float,
    revenue_growth: float,
    rsi: float,
    debt_to_equity: float,
    price_to_book: float,
    limits: MomentumLimits = LIMITS,
) -> dict[str, float]:
    """Map raw signals to [0, 1] using fixed domains."""
    return {
        "return_rate": rescale(return_rate, limits.return_domain),
        "sortino_ratio": rescale(sortino_ratio, limits.sortino_domain),
        "revenue_growth": rescale(revenue_growth, limits.revenue_growth_domain),
        "rsi": clamp((100.0 - rsi) / 100.0, 0.0, 1.0),
        "debt_to_equity": inverse_ratio(debt_to_equity, limits.ratio_floor),
        "price_to_book": inverse_ratio(price_to_book, limits.ratio_floor),
    }


def weighted_sum(normalized: Mapping[str, float], weights: Mapping[str, float]) -> float:
    return float(sum(weights.get(key, 0.0) * normalized.get(key, 0.0) for key in SIGNALS))


def compute_scores(
    metrics: Mapping[int, PeriodMetrics],
    rsi: float,
    revenue_growth: float,
    debt_to_equity: float,
    price_to_book: float,
    limits: MomentumLimits = LIMITS,
) -> HorizonScores:
    """
    Per-horizon sub-scores and the composite, all in [0, 1].

    ``metrics`` must hold every horizon in ``limits.horizons_months``.
    """
    sub_scores: dict[int, float] = {}
    for horizon in limits.horizons_months:
        period = metrics[horizon]
        normalized = normalize_absolute(
            return_rate=period.return_rate,
            sortino_ratio=period.sortino_ratio,
            revenue_growth=revenue_growth,
            rsi=rsi,
            debt_to_equity=debt_to_equity,
            price_to_book=price_to_book,
            limits=limits,
        )
        raw = weighted_sum(normalized, limits.horizon_weights[horizon])
        sub_scores[horizon] = clamp(raw, 0.0, 1.0)

    composite = sum(
        limits.composite_weights[h] * sub_scores[h] for h in limits.horizons_months
    )
    final = clamp(max(0.0, composite), 0.0, 1.0)

    decimals = limits.ratio_decimals
    return HorizonScores(
        score_1m=round(sub_scores[1], decimals),
        score_3m=round(sub_scores[3], decimals),
        score_6m=round(sub_scores[6], decimals),
        final_score=round(final, decimals),
    )


# =============================================================================
# Relative strategy
# =============================================================================


def min_max(series: pd.Series, invert: bool = False) -> pd.Series:
    """Min-max normalize (optionally 1 - normalized); a flat series maps to 0."""
    values = series.astype(float)
    low, high = values.min(), values.max()
    span = high - low
    if not np.isfinite(span) or span == 0:
        return pd.Series(0.0, index=series.index)
    normalized = (values - low) / span
    return 1.0 - normalized if invert else normalized


def normalize_relative(
    frame: pd.DataFrame,
    limits: MomentumLimits = LIMITS,
) -> pd.DataFrame:
    """
    Cross-sectional normalization of a signal frame (one row per symbol).

    Leverage and valuation are inverted (1 - normalized); RSI uses the
    fixed band mapping rather than the observed range.
    """
    out = pd.DataFrame(index=frame.index)
    low, high = limits.relative_rsi_band
    for key in SIGNALS:
        column = frame[key].astype(float).fillna(0.0)
        if key == "rsi":
            out[key] = ((column - low) / (high - low)).clip(0.0, 1.0)
        else:
            out[key] = min_max(column, invert=key in INVERTED_SIGNALS)
    return out


def relative_scores(
    rows: Sequence[Mapping[str, float]],
    weights: Mapping[str, float],
    limits: MomentumLimits = LIMITS,
) -> list[RelativeScore]:
    """
    Score a cross-section with caller weights.

    Each row carries ``symbol`` plus every key in SIGNALS. The weighted
    sum is not clamped. Results are ordered by score desc, symbol asc.
    """
    if not rows:
        return []

    frame = pd.DataFrame(list(rows)).set_index("symbol")
    normalized = normalize_relative(frame, limits)

    results = []
    for symbol, norm in normalized.iterrows():
        norm_dict = {k: round(float(norm[k]), limits.ratio_decimals) for k in SIGNALS}
        results.append(
            RelativeScore(
                symbol=str(symbol),
                score=round(weighted_sum(norm_dict, weights), limits.ratio_decimals),
                normalized=norm_dict,
                raw={k: float(frame.at[symbol, k]) for k in SIGNALS},
            )
        )

    results.sort(key=lambda r: (-r.score, r.symbol))
    return results
