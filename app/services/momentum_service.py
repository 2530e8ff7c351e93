"""Momentum ranking service.

Binds the momentum engine to its SQLAlchemy and yfinance collaborators and
translates engine outcomes into API responses:

- malformed or out-of-order dates        -> InputValidationError (400)
- too few trading days / nothing scored  -> 200 with an empty result + reason
- price history unavailable              -> ExternalServiceError (503)
- write failure                          -> PersistenceError (503)
- run exceeds its time budget            -> RecomputationTimeout (504)
"""

from __future__ import annotations

import asyncio
import re
from datetime import date
from typing import Optional

from app.core.config import settings
from app.core.exceptions import (
    ExternalProviderError,
    ExternalServiceError,
    InputValidationError,
    InsufficientCalendarData,
    NotFoundError,
    RecomputationTimeout,
)
from app.core.logging import get_logger
from app.quant_engine import (
    SIGNALS,
    MomentumLimits,
    MomentumRecord,
    RankingSummary,
    RecomputationController,
    limits_from_settings,
    relative_scores,
)
from app.quant_engine.ports import FundamentalsSource, MomentumStore, PriceHistorySource
from app.repositories import momentum_records_orm as momentum_repo
from app.repositories import price_history_orm as price_history_repo
from app.schemas.momentum import (
    ComputeMomentumResponse,
    EvaluationDateResponse,
    EvaluationDatesResponse,
    MomentumRankingResponse,
    MomentumRecordResponse,
    RankingSummaryResponse,
    RelativeRankingRequest,
    RelativeRankingResponse,
    RelativeScoreResponse,
    RelativeWeights,
    SkippedInstrumentResponse,
)
from app.services.data_providers import get_yfinance_service


logger = get_logger("services.momentum")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# =============================================================================
# Input validation
# =============================================================================


def parse_iso_date(value: str, field: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string."""
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise InputValidationError(
            message=f"{field} must be an ISO date (YYYY-MM-DD)",
            details={"field": field, "value": value},
        )
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InputValidationError(
            message=f"{field} is not a valid calendar date",
            details={"field": field, "value": value},
        ) from e


def validate_window(start_date: str, end_date: str) -> tuple[date, date]:
    """Parse both bounds and require start < end."""
    start = parse_iso_date(start_date, "start_date")
    end = parse_iso_date(end_date, "end_date")
    if start >= end:
        raise InputValidationError(
            message="start_date must be before end_date",
            details={"start_date": start_date, "end_date": end_date},
        )
    return start, end


# =============================================================================
# Wiring
# =============================================================================


def build_controller(
    prices: Optional[PriceHistorySource] = None,
    fundamentals: Optional[FundamentalsSource] = None,
    store: Optional[MomentumStore] = None,
    limits: Optional[MomentumLimits] = None,
) -> RecomputationController:
    """Controller wired to the database and yfinance unless overridden."""
    return RecomputationController(
        prices=prices or price_history_repo,
        fundamentals=fundamentals or get_yfinance_service(),
        store=store or momentum_repo,
        limits=limits or limits_from_settings(),
        fundamentals_concurrency=settings.fundamentals_max_concurrency,
        instrument_concurrency=settings.instrument_concurrency,
    )


# =============================================================================
# Response builders
# =============================================================================


def record_to_response(record: MomentumRecord, rank: int) -> MomentumRecordResponse:
    data = record.to_dict()
    return MomentumRecordResponse(
        rank=rank,
        evaluation_date=record.evaluation_date,
        symbol=record.symbol,
        metrics=data["metrics"],
        rsi=record.rsi,
        six_month_change=record.six_month_change,
        fundamentals=data["fundamentals"],
        score_1m=record.scores.score_1m,
        score_3m=record.scores.score_3m,
        score_6m=record.scores.score_6m,
        final_score=record.final_score,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def summarize(records: list[MomentumRecord]) -> RankingSummaryResponse:
    summary = RankingSummary.from_scores([r.final_score for r in records])
    return RankingSummaryResponse(
        count=summary.count,
        top_score=summary.top_score,
        average_score=summary.average_score,
    )


def _rank(records: list[MomentumRecord]) -> list[MomentumRecordResponse]:
    ordered = sorted(records, key=lambda r: (-r.final_score, r.symbol))
    return [record_to_response(r, i) for i, r in enumerate(ordered, start=1)]


def _empty(evaluation_date: date, reason: str, message: str, **extra) -> ComputeMomentumResponse:
    return ComputeMomentumResponse(
        evaluation_date=evaluation_date,
        status="empty",
        reason=reason,
        message=message,
        summary=RankingSummaryResponse(count=0),
        **extra,
    )


# =============================================================================
# Operations
# =============================================================================


async def compute_momentum(
    start_date: str,
    end_date: str,
    controller: Optional[RecomputationController] = None,
    timeout: Optional[float] = None,
) -> ComputeMomentumResponse:
    """Validate, recompute the cross-section for ``end_date`` and rank it."""
    start, end = validate_window(start_date, end_date)
    controller = controller or build_controller()
    timeout = timeout if timeout is not None else settings.recompute_timeout_seconds

    logger.info(f"Momentum recompute requested: {start}..{end}")
    try:
        result = await asyncio.wait_for(controller.run(start, end), timeout=timeout)
    except InsufficientCalendarData as e:
        return _empty(
            end,
            reason="insufficient_calendar",
            message=f"Not enough trading days: {e.found}/{e.required}",
        )
    except ExternalProviderError as e:
        raise ExternalServiceError(
            message="Price history is unavailable",
            details={"provider": e.provider},
        ) from e
    except asyncio.TimeoutError as e:
        logger.error(f"Momentum recompute {start}..{end} exceeded {timeout}s")
        raise RecomputationTimeout(
            message=f"Momentum recomputation exceeded {timeout:g}s",
            details={"start_date": start_date, "end_date": end_date},
        ) from e

    skipped = [
        SkippedInstrumentResponse(symbol=s.symbol, reason=s.code.value, detail=s.detail)
        for s in result.skipped
    ]
    records = list(result.records)

    if not records:
        if result.candidates == 0:
            return _empty(
                end,
                reason="no_candidates",
                message="No instruments passed the price, liquidity and completeness screens",
                duration_ms=result.duration_ms,
            )
        return _empty(
            end,
            reason="no_records",
            message=f"All {result.candidates} candidates were skipped",
            skipped=skipped,
            duration_ms=result.duration_ms,
        )

    return ComputeMomentumResponse(
        evaluation_date=end,
        status="completed",
        message=f"Scored {len(records)} of {result.candidates} candidates",
        summary=summarize(records),
        records=_rank(records),
        skipped=skipped,
        defaulted_fundamentals=list(result.defaulted_fundamentals),
        duration_ms=result.duration_ms,
    )


async def _latest_evaluation_date(store: MomentumStore) -> date:
    dates = await store.list_evaluation_dates()
    if not dates:
        raise NotFoundError(message="No momentum rankings have been computed yet")
    return dates[0].evaluation_date


async def get_ranking(
    evaluation_date: Optional[date] = None,
    limit: Optional[int] = None,
    store: Optional[MomentumStore] = None,
) -> MomentumRankingResponse:
    """Stored ranking for a date (latest when omitted)."""
    store = store or momentum_repo
    if evaluation_date is None:
        evaluation_date = await _latest_evaluation_date(store)

    records = await store.query_records(evaluation_date, limit=limit)
    return MomentumRankingResponse(
        evaluation_date=evaluation_date,
        summary=summarize(records),
        records=_rank(records),
    )


async def list_dates(store: Optional[MomentumStore] = None) -> EvaluationDatesResponse:
    store = store or momentum_repo
    dates = await store.list_evaluation_dates()
    return EvaluationDatesResponse(
        dates=[
            EvaluationDateResponse(
                evaluation_date=d.evaluation_date,
                first_date=d.first_date,
                last_date=d.last_date,
                record_count=d.record_count,
            )
            for d in dates
        ]
    )


async def relative_ranking(
    request: RelativeRankingRequest,
    store: Optional[MomentumStore] = None,
    limits: Optional[MomentumLimits] = None,
) -> RelativeRankingResponse:
    """Re-rank a stored cross-section with caller weights (unbounded scores)."""
    store = store or momentum_repo
    limits = limits or limits_from_settings()
    records = await store.query_records(request.evaluation_date)
    if not records:
        raise NotFoundError(
            message=f"No momentum records for {request.evaluation_date}",
            details={"evaluation_date": request.evaluation_date.isoformat()},
        )

    weights = request.weights or RelativeWeights(**dict(limits.relative_default_weights))
    horizon = int(request.horizon.rstrip("m"))

    rows = [
        {
            "symbol": r.symbol,
            "return_rate": r.metrics[horizon].return_rate,
            "sortino_ratio": r.metrics[horizon].sortino_ratio,
            "revenue_growth": r.fundamentals.revenue_growth,
            "rsi": r.rsi,
            "debt_to_equity": r.fundamentals.debt_to_equity,
            "price_to_book": r.fundamentals.price_to_book,
        }
        for r in records
    ]
    weight_map = {key: getattr(weights, key) for key in SIGNALS}
    scored = relative_scores(rows, weight_map, limits)
    if request.limit is not None:
        scored = scored[: request.limit]

    return RelativeRankingResponse(
        evaluation_date=request.evaluation_date,
        horizon=request.horizon,
        weights=weights,
        results=[
            RelativeScoreResponse(
                rank=i,
                symbol=s.symbol,
                score=s.score,
                normalized=s.normalized,
                raw=s.raw,
            )
            for i, s in enumerate(scored, start=1)
        ],
    )
