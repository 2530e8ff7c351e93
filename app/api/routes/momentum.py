"""Momentum ranking endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from app.core.logging import get_logger
from app.schemas.momentum import (
    ComputeMomentumRequest,
    ComputeMomentumResponse,
    EvaluationDatesResponse,
    MomentumRankingResponse,
    RelativeRankingRequest,
    RelativeRankingResponse,
)
from app.services import momentum_service


router = APIRouter(prefix="/momentum")

logger = get_logger("api.momentum")


@router.post(
    "/compute",
    response_model=ComputeMomentumResponse,
    summary="Recompute momentum scores",
    description=(
        "Recompute the momentum cross-section for end_date over "
        "[start_date, end_date] and return it ranked by final score. "
        "An empty result is returned with a reason rather than an error."
    ),
)
async def compute_momentum(request: ComputeMomentumRequest) -> ComputeMomentumResponse:
    return await momentum_service.compute_momentum(request.start_date, request.end_date)


@router.get(
    "/ranking",
    response_model=MomentumRankingResponse,
    summary="Stored momentum ranking",
    description="Stored records for an evaluation date (latest when omitted), best first.",
)
async def get_ranking(
    evaluation_date: Optional[date] = Query(None, description="Evaluation date (YYYY-MM-DD)"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum records"),
) -> MomentumRankingResponse:
    return await momentum_service.get_ranking(evaluation_date, limit)


@router.get(
    "/dates",
    response_model=EvaluationDatesResponse,
    summary="Evaluation dates",
    description="Evaluation dates with stored cross-sections, newest first.",
)
async def list_dates() -> EvaluationDatesResponse:
    return await momentum_service.list_dates()


@router.post(
    "/ranking/relative",
    response_model=RelativeRankingResponse,
    summary="Relative (caller-weighted) ranking",
    description=(
        "Min-max normalize a stored cross-section and combine with caller "
        "weights. Scores are NOT bounded to [0, 1]."
    ),
)
async def relative_ranking(request: RelativeRankingRequest) -> RelativeRankingResponse:
    return await momentum_service.relative_ranking(request)
