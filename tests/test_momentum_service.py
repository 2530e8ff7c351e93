"""Tests for the momentum ranking service."""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import (
    ExternalProviderError,
    ExternalServiceError,
    InputValidationError,
    InsufficientCalendarData,
    NotFoundError,
    PersistenceError,
    RecomputationTimeout,
)
from app.quant_engine.types import RankingSummary
from app.schemas.momentum import RelativeRankingRequest, RelativeWeights
from app.services import momentum_service

from tests.conftest import EVALUATION_DATE, FakeMomentumStore


class TestInputValidation:
    """Tests for strict date parsing and window validation."""

    @pytest.mark.parametrize("value", ["2024/01/02", "2024-1-2", "20240102", "", "yesterday"])
    def test_malformed_dates(self, value):
        with pytest.raises(InputValidationError):
            momentum_service.parse_iso_date(value, "start_date")

    def test_impossible_calendar_date(self):
        with pytest.raises(InputValidationError, match="not a valid calendar date"):
            momentum_service.parse_iso_date("2024-02-30", "end_date")

    def test_start_must_precede_end(self):
        with pytest.raises(InputValidationError):
            momentum_service.validate_window("2024-07-01", "2024-07-01")
        with pytest.raises(InputValidationError):
            momentum_service.validate_window("2024-07-02", "2024-07-01")

    def test_valid_window(self):
        assert momentum_service.validate_window("2024-01-01", "2024-07-01") == (
            date(2024, 1, 1),
            date(2024, 7, 1),
        )


class TestSummary:
    """Tests for ranking summary statistics."""

    def test_reference_scores(self):
        summary = RankingSummary.from_scores([0.82, 0.55, 0.30])
        assert summary.count == 3
        assert summary.top_score == 0.82
        assert summary.average_score == 0.5567

    def test_empty(self):
        summary = RankingSummary.from_scores([])
        assert summary.count == 0
        assert summary.top_score is None
        assert summary.average_score is None


class TestComputeMomentum:
    """Tests for compute_momentum outcome mapping."""

    @pytest.mark.asyncio
    async def test_completed_run(self, controller):
        response = await momentum_service.compute_momentum(
            "2024-01-01", "2024-07-01", controller=controller
        )

        assert response.status == "completed"
        assert response.evaluation_date == EVALUATION_DATE
        assert [r.rank for r in response.records] == [1, 2, 3]
        assert response.summary.top_score == pytest.approx(response.records[0].final_score, abs=1e-4)
        assert response.summary.count == 3
        assert set(response.records[0].metrics) == {"1m", "3m", "6m"}
        assert response.defaulted_fundamentals == ["CCC"]

    @pytest.mark.asyncio
    async def test_insufficient_calendar_is_empty_result(self):
        controller = MagicMock()
        controller.run = AsyncMock(
            side_effect=InsufficientCalendarData(3, 15, date(2024, 6, 20), date(2024, 7, 1))
        )

        response = await momentum_service.compute_momentum(
            "2024-06-20", "2024-07-01", controller=controller
        )

        assert response.status == "empty"
        assert response.reason == "insufficient_calendar"
        assert response.records == []
        assert response.summary.count == 0

    @pytest.mark.asyncio
    async def test_no_candidates_is_empty_result(self, universe_bars, fundamentals_source, momentum_store):
        from app.quant_engine import RecomputationController
        from app.quant_engine.config import LIMITS
        from tests.conftest import FakePriceHistory

        controller = RecomputationController(
            FakePriceHistory(universe_bars),
            fundamentals_source,
            momentum_store,
            limits=LIMITS.with_overrides(min_avg_dollar_volume=1e15),
        )
        response = await momentum_service.compute_momentum(
            "2024-01-01", "2024-07-01", controller=controller
        )

        assert response.status == "empty"
        assert response.reason == "no_candidates"

    @pytest.mark.asyncio
    async def test_invalid_input_never_reaches_controller(self):
        controller = MagicMock()
        controller.run = AsyncMock()

        with pytest.raises(InputValidationError):
            await momentum_service.compute_momentum("2024-07-01", "2024-01-01", controller=controller)
        controller.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_price_history_failure_maps_to_503(self):
        controller = MagicMock()
        controller.run = AsyncMock(side_effect=ExternalProviderError("price_history", None))

        with pytest.raises(ExternalServiceError) as exc_info:
            await momentum_service.compute_momentum("2024-01-01", "2024-07-01", controller=controller)
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self):
        controller = MagicMock()
        controller.run = AsyncMock(side_effect=PersistenceError())

        with pytest.raises(PersistenceError):
            await momentum_service.compute_momentum("2024-01-01", "2024-07-01", controller=controller)

    @pytest.mark.asyncio
    async def test_timeout_maps_to_504(self):
        async def slow_run(start, end):
            await asyncio.sleep(5)

        controller = MagicMock()
        controller.run = slow_run

        with pytest.raises(RecomputationTimeout) as exc_info:
            await momentum_service.compute_momentum(
                "2024-01-01", "2024-07-01", controller=controller, timeout=0.01
            )
        assert exc_info.value.status_code == 504


class TestStoredRankings:
    """Tests for get_ranking, list_dates and relative_ranking."""

    @pytest.mark.asyncio
    async def test_ranking_defaults_to_latest_date(self, controller, momentum_store):
        await controller.run(date(2024, 1, 1), EVALUATION_DATE)

        response = await momentum_service.get_ranking(store=momentum_store, limit=2)

        assert response.evaluation_date == EVALUATION_DATE
        assert len(response.records) == 2
        assert response.records[0].rank == 1

    @pytest.mark.asyncio
    async def test_ranking_without_data(self):
        with pytest.raises(NotFoundError):
            await momentum_service.get_ranking(store=FakeMomentumStore())

    @pytest.mark.asyncio
    async def test_ranking_for_unknown_date_is_empty(self, controller, momentum_store):
        await controller.run(date(2024, 1, 1), EVALUATION_DATE)

        response = await momentum_service.get_ranking(date(2023, 1, 3), store=momentum_store)

        assert response.records == []
        assert response.summary.count == 0

    @pytest.mark.asyncio
    async def test_list_dates(self, controller, momentum_store):
        await controller.run(date(2024, 1, 1), EVALUATION_DATE)

        response = await momentum_service.list_dates(store=momentum_store)

        assert [d.evaluation_date for d in response.dates] == [EVALUATION_DATE]
        assert response.dates[0].record_count == 3

    @pytest.mark.asyncio
    async def test_relative_ranking_default_weights(self, controller, momentum_store):
        await controller.run(date(2024, 1, 1), EVALUATION_DATE)

        response = await momentum_service.relative_ranking(
            RelativeRankingRequest(evaluation_date=EVALUATION_DATE), store=momentum_store
        )

        assert response.bounded is False
        assert response.weights.return_rate == 0.30
        assert [r.rank for r in response.results] == [1, 2, 3]
        scores = [r.score for r in response.results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_relative_ranking_single_signal(self, controller, momentum_store):
        await controller.run(date(2024, 1, 1), EVALUATION_DATE)

        response = await momentum_service.relative_ranking(
            RelativeRankingRequest(
                evaluation_date=EVALUATION_DATE,
                horizon="1m",
                weights=RelativeWeights(return_rate=2.0),
                limit=1,
            ),
            store=momentum_store,
        )

        assert len(response.results) == 1
        # Best 1M return gets normalized 1.0, scaled by the weight
        assert response.results[0].score == 2.0

    @pytest.mark.asyncio
    async def test_relative_ranking_unknown_date(self):
        with pytest.raises(NotFoundError):
            await momentum_service.relative_ranking(
                RelativeRankingRequest(evaluation_date=EVALUATION_DATE), store=FakeMomentumStore()
            )


class TestBuildController:
    """Tests for default wiring."""

    def test_uses_settings_concurrency(self, mocker):
        mocker.patch.object(momentum_service.settings, "instrument_concurrency", 3)
        mocker.patch.object(momentum_service, "get_yfinance_service", return_value=MagicMock())

        controller = momentum_service.build_controller()

        assert controller._instrument_concurrency == 3
        assert controller.store is momentum_service.momentum_repo
