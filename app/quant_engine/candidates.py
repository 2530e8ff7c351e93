"""
Candidate screening: price band, liquidity floor and data completeness.

Works on the per-symbol window summary produced by the price-history
source (one row per symbol, aggregated in SQL).
"""

from __future__ import annotations

import math

import pandas as pd

from app.core.logging import get_logger

from .config import LIMITS, MomentumLimits
from .ports import WINDOW_SUMMARY_COLUMNS
from .types import Candidate


logger = get_logger("quant_engine.candidates")


def filter_candidates(
    summary: pd.DataFrame,
    day_count: int,
    limits: MomentumLimits = LIMITS,
) -> list[Candidate]:
    """
    Screen the universe down to tradeable candidates.

    A symbol passes when:
    - every close in the window is inside [min_price, max_price]
    - mean(volume x close) >= min_avg_dollar_volume
    - observed days >= completeness_ratio x day_count

    Returns candidates ordered by average dollar volume, descending
    (symbol ascending on ties). An empty list is a valid outcome.
    """
    if summary is None or summary.empty:
        logger.info("Candidate screen: empty window summary")
        return []

    missing = [c for c in WINDOW_SUMMARY_COLUMNS if c not in summary.columns]
    if missing:
        raise ValueError(f"Window summary missing columns: {missing}")

    df = summary.loc[:, list(WINDOW_SUMMARY_COLUMNS)].copy()
    for col in ("days", "min_close", "max_close", "avg_dollar_volume"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    min_days = math.ceil(limits.completeness_ratio * day_count)

    mask = (
        (df["min_close"] >= limits.min_price)
        & (df["max_close"] <= limits.max_price)
        & (df["avg_dollar_volume"] >= limits.min_avg_dollar_volume)
        & (df["days"] >= min_days)
    )
    # NaN aggregates fail every comparison above
    passed = df[mask.fillna(False)]
    passed = passed.sort_values(
        ["avg_dollar_volume", "symbol"], ascending=[False, True], kind="mergesort"
    )

    candidates = [
        Candidate(
            symbol=str(row.symbol),
            avg_dollar_volume=float(row.avg_dollar_volume),
            days_observed=int(row.days),
        )
        for row in passed.itertuples(index=False)
    ]

    logger.info(
        f"Candidate screen: {len(candidates)}/{len(df)} symbols passed "
        f"(min_days={min_days}, band={limits.min_price}-{limits.max_price})"
    )
    return candidates
