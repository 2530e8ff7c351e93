"""Pydantic schemas for API request/response validation."""

from .common import (
    ErrorResponse,
    HealthResponse,
)
from .momentum import (
    ComputeMomentumRequest,
    ComputeMomentumResponse,
    EvaluationDateResponse,
    EvaluationDatesResponse,
    FundamentalsResponse,
    MomentumRankingResponse,
    MomentumRecordResponse,
    PeriodMetricsResponse,
    RankingSummaryResponse,
    RelativeRankingRequest,
    RelativeRankingResponse,
    RelativeScoreResponse,
    RelativeWeights,
    SkippedInstrumentResponse,
)


__all__ = [
    # Momentum
    "ComputeMomentumRequest",
    "ComputeMomentumResponse",
    "MomentumRecordResponse",
    "PeriodMetricsResponse",
    "FundamentalsResponse",
    "RankingSummaryResponse",
    "SkippedInstrumentResponse",
    "MomentumRankingResponse",
    "EvaluationDateResponse",
    "EvaluationDatesResponse",
    "RelativeWeights",
    "RelativeRankingRequest",
    "RelativeScoreResponse",
    "RelativeRankingResponse",
    # Common
    "ErrorResponse",
    "HealthResponse",
]
