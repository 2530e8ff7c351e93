"""Momentum records repository using SQLAlchemy ORM.

A cross-section (all records for one evaluation date) is only ever
replaced as a whole, inside one transaction. The module itself satisfies
the engine's ``MomentumStore`` port.

Usage:
    from app.repositories import momentum_records_orm as momentum_repo

    stored = await momentum_repo.replace_records(eval_date, records)
    ranking = await momentum_repo.query_records(eval_date, limit=50)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import PersistenceError
from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import MomentumRecordRow
from app.domain.fundamentals import FundamentalsSnapshot
from app.quant_engine.types import (
    EvaluationDateInfo,
    HorizonScores,
    MomentumRecord,
    PeriodMetrics,
)


logger = get_logger("repositories.momentum_records_orm")

HORIZONS = (1, 3, 6)


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def _to_row(
    record: MomentumRecord,
    content_hash: str,
    created_at: datetime,
    updated_at: datetime,
) -> MomentumRecordRow:
    values = {}
    for h in HORIZONS:
        m = record.metrics[h]
        values.update({
            f"first_date_{h}m": m.first_date,
            f"last_date_{h}m": m.last_date,
            f"first_close_{h}m": _dec(m.first_close),
            f"last_close_{h}m": _dec(m.last_close),
            f"return_rate_{h}m": _dec(m.return_rate),
            f"sortino_ratio_{h}m": _dec(m.sortino_ratio),
            f"avg_dollar_volume_{h}m": int(m.avg_dollar_volume),
        })

    return MomentumRecordRow(
        evaluation_date=record.evaluation_date,
        symbol=record.symbol,
        rsi=_dec(record.rsi),
        six_month_change=_dec(record.six_month_change),
        revenue_growth=_dec(record.fundamentals.revenue_growth),
        debt_to_equity=_dec(record.fundamentals.debt_to_equity),
        price_to_book=_dec(record.fundamentals.price_to_book),
        fundamentals_defaulted=record.fundamentals.defaulted,
        score_1m=_dec(record.scores.score_1m),
        score_3m=_dec(record.scores.score_3m),
        score_6m=_dec(record.scores.score_6m),
        final_score=_dec(record.scores.final_score),
        content_hash=content_hash,
        created_at=created_at,
        updated_at=updated_at,
        **values,
    )


def _to_record(row: MomentumRecordRow) -> MomentumRecord:
    metrics = {
        h: PeriodMetrics(
            first_date=getattr(row, f"first_date_{h}m"),
            last_date=getattr(row, f"last_date_{h}m"),
            first_close=float(getattr(row, f"first_close_{h}m")),
            last_close=float(getattr(row, f"last_close_{h}m")),
            return_rate=float(getattr(row, f"return_rate_{h}m")),
            sortino_ratio=float(getattr(row, f"sortino_ratio_{h}m")),
            avg_dollar_volume=int(getattr(row, f"avg_dollar_volume_{h}m")),
        )
        for h in HORIZONS
    }
    return MomentumRecord(
        evaluation_date=row.evaluation_date,
        symbol=row.symbol,
        metrics=metrics,
        rsi=float(row.rsi),
        six_month_change=float(row.six_month_change),
        fundamentals=FundamentalsSnapshot(
            revenue_growth=float(row.revenue_growth),
            debt_to_equity=float(row.debt_to_equity),
            price_to_book=float(row.price_to_book),
            defaulted=row.fundamentals_defaulted,
        ),
        scores=HorizonScores(
            score_1m=float(row.score_1m),
            score_3m=float(row.score_3m),
            score_6m=float(row.score_6m),
            final_score=float(row.final_score),
        ),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def replace_records(
    evaluation_date: date,
    records: Sequence[MomentumRecord],
) -> list[MomentumRecord]:
    """Atomically replace the cross-section for an evaluation date.

    Runs in one transaction: read existing hashes, delete the date's rows,
    insert the staged rows. A row whose content is unchanged keeps both
    timestamps; a changed row keeps ``created_at`` and gets a new
    ``updated_at``. On failure the transaction is rolled back and the
    prior cross-section stays visible.

    Returns:
        The stored records, with audit timestamps filled in

    Raises:
        PersistenceError: the transaction failed
    """
    now = datetime.now(UTC)
    stored: list[MomentumRecord] = []

    try:
        async with get_session() as session:
            result = await session.execute(
                select(
                    MomentumRecordRow.symbol,
                    MomentumRecordRow.content_hash,
                    MomentumRecordRow.created_at,
                    MomentumRecordRow.updated_at,
                ).where(MomentumRecordRow.evaluation_date == evaluation_date)
            )
            existing = {row.symbol: row for row in result.all()}

            await session.execute(
                delete(MomentumRecordRow).where(
                    MomentumRecordRow.evaluation_date == evaluation_date
                )
            )

            for record in records:
                content_hash = record.content_hash()
                prev = existing.get(record.symbol)
                created_at = prev.created_at if prev else now
                updated_at = (
                    prev.updated_at if prev and prev.content_hash == content_hash else now
                )
                session.add(_to_row(record, content_hash, created_at, updated_at))
                stored.append(replace(record, created_at=created_at, updated_at=updated_at))

            await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to replace momentum records for {evaluation_date}: {e}")
        raise PersistenceError(
            message=f"Failed to store momentum records for {evaluation_date}",
            details={"evaluation_date": evaluation_date.isoformat()},
        ) from e

    unchanged = sum(
        1 for r in stored
        if r.symbol in existing and existing[r.symbol].content_hash == r.content_hash()
    )
    logger.info(
        f"Replaced momentum cross-section {evaluation_date}: "
        f"{len(stored)} rows ({unchanged} unchanged, {len(existing)} previous)"
    )
    return stored


async def delete_records(evaluation_date: date) -> int:
    """Delete every record for an evaluation date. Returns rows deleted."""
    try:
        async with get_session() as session:
            result = await session.execute(
                delete(MomentumRecordRow).where(
                    MomentumRecordRow.evaluation_date == evaluation_date
                )
            )
            await session.commit()
            return result.rowcount or 0
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete momentum records for {evaluation_date}: {e}")
        raise PersistenceError(
            message=f"Failed to delete momentum records for {evaluation_date}",
        ) from e


async def query_records(
    evaluation_date: date,
    limit: int | None = None,
) -> list[MomentumRecord]:
    """Records for a date ordered by final score desc, then symbol."""
    try:
        async with get_session() as session:
            stmt = (
                select(MomentumRecordRow)
                .where(MomentumRecordRow.evaluation_date == evaluation_date)
                .order_by(
                    MomentumRecordRow.final_score.desc(),
                    MomentumRecordRow.symbol.asc(),
                )
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [_to_record(row) for row in result.scalars().all()]
    except SQLAlchemyError as e:
        logger.error(f"Failed to query momentum records for {evaluation_date}: {e}")
        raise PersistenceError(message="Failed to read momentum records") from e


async def list_evaluation_dates() -> list[EvaluationDateInfo]:
    """Stored evaluation dates with data window and size, newest first."""
    try:
        async with get_session() as session:
            result = await session.execute(
                select(
                    MomentumRecordRow.evaluation_date,
                    func.min(MomentumRecordRow.first_date_6m).label("first_date"),
                    func.max(MomentumRecordRow.last_date_6m).label("last_date"),
                    func.count().label("record_count"),
                )
                .group_by(MomentumRecordRow.evaluation_date)
                .order_by(MomentumRecordRow.evaluation_date.desc())
            )
            return [
                EvaluationDateInfo(
                    evaluation_date=row.evaluation_date,
                    first_date=row.first_date,
                    last_date=row.last_date,
                    record_count=int(row.record_count),
                )
                for row in result.all()
            ]
    except SQLAlchemyError as e:
        logger.error(f"Failed to list momentum evaluation dates: {e}")
        raise PersistenceError(message="Failed to read momentum evaluation dates") from e
