"""Tests for the momentum records repository mapping and error handling."""

from __future__ import annotations

from datetime import UTC, date, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import PersistenceError
from app.domain.fundamentals import FundamentalsSnapshot
from app.quant_engine.types import HorizonScores, MomentumRecord, PeriodMetrics
from app.repositories import momentum_records_orm as momentum_repo


@pytest.fixture
def record() -> MomentumRecord:
    period = PeriodMetrics(
        first_date=date(2024, 1, 2),
        last_date=date(2024, 7, 1),
        first_close=101.2345,
        last_close=130.5,
        return_rate=0.289112,
        sortino_ratio=1.234567,
        avg_dollar_volume=2_500_000_000,
    )
    return MomentumRecord(
        evaluation_date=date(2024, 7, 1),
        symbol="AAA",
        metrics={1: period, 3: period, 6: period},
        rsi=61.2345,
        six_month_change=28.9,
        fundamentals=FundamentalsSnapshot(
            revenue_growth=0.12, debt_to_equity=10.0, price_to_book=3.4, defaulted=False
        ),
        scores=HorizonScores(score_1m=0.61, score_3m=0.58, score_6m=0.66, final_score=0.6145),
    )


def _failing_session() -> MagicMock:
    session_cm = MagicMock()
    session_cm.__aenter__.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
    return MagicMock(return_value=session_cm)


class TestRowMapping:
    """Record -> row -> record preserves content."""

    def test_row_round_trip_keeps_content_hash(self, record):
        now = datetime(2024, 7, 2, tzinfo=UTC)
        row = momentum_repo._to_row(record, record.content_hash(), now, now)
        restored = momentum_repo._to_record(row)

        assert row.return_rate_6m == momentum_repo._dec(0.289112)
        assert restored.content_hash() == record.content_hash()
        assert restored.created_at == now


class TestPersistenceErrors:
    """Database failures surface as PersistenceError."""

    @pytest.mark.asyncio
    async def test_replace_records(self, mocker, record):
        mocker.patch.object(momentum_repo, "get_session", _failing_session())

        with pytest.raises(PersistenceError) as exc_info:
            await momentum_repo.replace_records(record.evaluation_date, [record])
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_delete_records(self, mocker):
        mocker.patch.object(momentum_repo, "get_session", _failing_session())

        with pytest.raises(PersistenceError):
            await momentum_repo.delete_records(date(2024, 7, 1))
