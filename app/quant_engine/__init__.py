"""
Momentum Scoring Engine
=======================

Ranks a universe of equities by a multi-horizon momentum score built from
price-return statistics, a downside-risk-adjusted return, a 14-period RSI
and fundamental ratios.

Pipeline
--------
calendar -> candidates -> period_metrics (1M/3M/6M) -> indicators
-> fundamentals -> normalization -> recompute (atomic replace)

Modules
-------
- config: every threshold, sentinel and weight (MomentumLimits)
- types: frozen value objects (PeriodMetrics, MomentumRecord, BatchResult)
- ports: Protocols for price history, fundamentals and persistence
- normalization: absolute (bounded) and relative (caller-weighted) scoring
- recompute: RecomputationController
"""

from __future__ import annotations

__version__ = "1.0.0"

from .calendar import resolve_calendar
from .candidates import filter_candidates
from .config import LIMITS, SIGNALS, MomentumLimits, limits_from_settings
from .fundamentals import resolve_fundamentals
from .indicators import compute_rsi
from .normalization import (
    compute_scores,
    normalize_absolute,
    normalize_relative,
    relative_scores,
)
from .period_metrics import (
    compute_period_metrics,
    downside_deviation,
    horizon_start,
    safe_float,
    sortino_ratio,
)
from .ports import FundamentalsSource, MomentumStore, PriceHistorySource
from .recompute import RecomputationController
from .types import (
    BatchResult,
    CalendarWindow,
    Candidate,
    EvaluationDateInfo,
    HorizonScores,
    MomentumRecord,
    PeriodMetrics,
    RankingSummary,
    RelativeScore,
    SkipCode,
    SkipReason,
)


__all__ = [
    # Config
    "LIMITS",
    "SIGNALS",
    "MomentumLimits",
    "limits_from_settings",
    # Pipeline
    "resolve_calendar",
    "filter_candidates",
    "compute_period_metrics",
    "downside_deviation",
    "sortino_ratio",
    "horizon_start",
    "safe_float",
    "compute_rsi",
    "resolve_fundamentals",
    "compute_scores",
    "normalize_absolute",
    "normalize_relative",
    "relative_scores",
    "RecomputationController",
    # Ports
    "PriceHistorySource",
    "FundamentalsSource",
    "MomentumStore",
    # Types
    "BatchResult",
    "CalendarWindow",
    "Candidate",
    "EvaluationDateInfo",
    "HorizonScores",
    "MomentumRecord",
    "PeriodMetrics",
    "RankingSummary",
    "RelativeScore",
    "SkipCode",
    "SkipReason",
]
