"""
Pydantic schemas for the momentum ranking API.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Records
# ============================================================================


class PeriodMetricsResponse(BaseModel):
    """Return and risk statistics over one horizon."""

    first_date: date
    last_date: date
    first_close: float = Field(..., description="Adjusted close on first_date")
    last_close: float = Field(..., description="Adjusted close on last_date")
    return_rate: float = Field(..., description="(last - first) / first")
    sortino_ratio: float = Field(..., description="Mean daily return / downside deviation")
    avg_dollar_volume: int = Field(..., description="Mean volume x close")


class FundamentalsResponse(BaseModel):
    """Fundamentals after defaults and outlier caps."""

    revenue_growth: float
    debt_to_equity: float
    price_to_book: float
    defaulted: bool = Field(False, description="True when any value fell back to a default")


class MomentumRecordResponse(BaseModel):
    """Momentum score for one instrument on one evaluation date."""

    model_config = ConfigDict(from_attributes=True)

    rank: int = Field(..., description="1-based position by final score")
    evaluation_date: date
    symbol: str
    metrics: dict[str, PeriodMetricsResponse] = Field(
        ..., description="Period metrics keyed by horizon ('1m', '3m', '6m')"
    )
    rsi: float = Field(..., description="14-period RSI over the 6M horizon")
    six_month_change: float = Field(..., description="Percent change of raw close over 6M")
    fundamentals: FundamentalsResponse
    score_1m: float = Field(..., ge=0, le=1)
    score_3m: float = Field(..., ge=0, le=1)
    score_6m: float = Field(..., ge=0, le=1)
    final_score: float = Field(..., ge=0, le=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RankingSummaryResponse(BaseModel):
    """Summary statistics over a ranked cross-section."""

    count: int = Field(..., description="Number of ranked instruments")
    top_score: Optional[float] = Field(None, description="Highest final score")
    average_score: Optional[float] = Field(None, description="Mean final score (4 decimals)")


class SkippedInstrumentResponse(BaseModel):
    """Instrument left out of the cross-section and why."""

    symbol: str
    reason: str = Field(..., description="Skip code, e.g. 'no_horizon_data'")
    detail: str = ""


# ============================================================================
# Compute (trigger)
# ============================================================================


class ComputeMomentumRequest(BaseModel):
    """Recompute the cross-section for [start_date, end_date]."""

    start_date: str = Field(..., description="ISO date (YYYY-MM-DD)", examples=["2024-01-02"])
    end_date: str = Field(..., description="ISO date (YYYY-MM-DD), also the evaluation date", examples=["2024-07-01"])


class ComputeMomentumResponse(BaseModel):
    """Result of a recomputation run."""

    evaluation_date: date
    status: Literal["completed", "empty"] = Field(
        ..., description="'empty' when the run produced no records"
    )
    message: str
    reason: Optional[Literal["insufficient_calendar", "no_candidates", "no_records"]] = Field(
        None, description="Why the result is empty"
    )
    summary: RankingSummaryResponse
    records: list[MomentumRecordResponse] = Field(default_factory=list)
    skipped: list[SkippedInstrumentResponse] = Field(default_factory=list)
    defaulted_fundamentals: list[str] = Field(
        default_factory=list, description="Symbols scored with default fundamentals"
    )
    duration_ms: int = 0


# ============================================================================
# Ranking queries
# ============================================================================


class MomentumRankingResponse(BaseModel):
    """Stored cross-section for an evaluation date, ordered by score."""

    evaluation_date: date
    summary: RankingSummaryResponse
    records: list[MomentumRecordResponse] = Field(default_factory=list)


class EvaluationDateResponse(BaseModel):
    """A stored evaluation date."""

    evaluation_date: date
    first_date: Optional[date] = Field(None, description="Earliest 6M data date")
    last_date: Optional[date] = Field(None, description="Latest 6M data date")
    record_count: int


class EvaluationDatesResponse(BaseModel):
    dates: list[EvaluationDateResponse] = Field(default_factory=list)


# ============================================================================
# Relative ranking
# ============================================================================


class RelativeWeights(BaseModel):
    """Caller weights for the relative view. Need not sum to 1; omitted keys weigh 0."""

    return_rate: float = Field(0.0, ge=0)
    sortino_ratio: float = Field(0.0, ge=0)
    revenue_growth: float = Field(0.0, ge=0)
    rsi: float = Field(0.0, ge=0)
    debt_to_equity: float = Field(0.0, ge=0)
    price_to_book: float = Field(0.0, ge=0)


class RelativeRankingRequest(BaseModel):
    """Re-rank a stored cross-section with caller weights."""

    evaluation_date: date
    horizon: Literal["1m", "3m", "6m"] = Field("6m", description="Horizon for return and Sortino")
    weights: Optional[RelativeWeights] = Field(
        None, description="Omit to use the default relative weights"
    )
    limit: Optional[int] = Field(None, ge=1, le=1000)


class RelativeScoreResponse(BaseModel):
    rank: int
    symbol: str
    score: float = Field(..., description="Weighted sum; NOT bounded to [0, 1]")
    normalized: dict[str, float]
    raw: dict[str, float]


class RelativeRankingResponse(BaseModel):
    evaluation_date: date
    horizon: str
    weights: RelativeWeights
    bounded: bool = Field(False, description="Relative scores are not clamped to [0, 1]")
    note: str = (
        "Relative scores are min-max normalized against this cross-section and "
        "combined with caller weights; they are not bounded to [0, 1]."
    )
    results: list[RelativeScoreResponse] = Field(default_factory=list)
