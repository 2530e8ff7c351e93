"""Tests for per-horizon return, Sortino and dollar volume statistics."""

from __future__ import annotations

from datetime import date

import numpy as np
import pandas as pd
import pytest

from app.domain.price import PriceBar, bars_to_frame
from app.quant_engine.config import LIMITS
from app.quant_engine.period_metrics import (
    average_dollar_volume,
    compute_period_metrics,
    daily_returns,
    downside_deviation,
    horizon_start,
    return_rate,
    six_month_change,
    sortino_ratio,
)

from tests.conftest import make_bars


class TestReturns:
    """Tests for daily returns and return rate."""

    def test_daily_returns_are_consecutive_ratios(self):
        returns = daily_returns(pd.Series([100.0, 110.0, 99.0]))
        assert list(returns.round(6)) == [0.1, -0.1]

    def test_return_rate(self):
        assert return_rate(100.0, 120.0) == pytest.approx(0.2)

    def test_return_rate_non_positive_first_close(self):
        assert return_rate(0.0, 120.0) == 0.0
        assert return_rate(-5.0, 120.0) == 0.0


class TestSortino:
    """Tests for downside deviation and the bounded Sortino ratio."""

    def test_reference_series(self):
        """[100, 90, 95, 110, 120] gives return 0.2, DD 0.1, Sortino ~0.511."""
        returns = daily_returns(pd.Series([100.0, 90.0, 95.0, 110.0, 120.0]))

        assert downside_deviation(returns) == pytest.approx(0.10)
        assert sortino_ratio(returns) == pytest.approx(0.5109, abs=1e-3)

    def test_downside_deviation_uses_negative_count(self):
        """RMS over the negative returns only, not over every return."""
        returns = pd.Series([-0.02, 0.05, 0.05, -0.04])
        expected = np.sqrt((0.02**2 + 0.04**2) / 2)
        assert downside_deviation(returns) == pytest.approx(expected)

    def test_no_negative_returns_hits_positive_sentinel(self):
        returns = daily_returns(pd.Series([100.0, 101.0, 103.0, 104.0]))
        assert sortino_ratio(returns, cap=5.0) == 5.0

    def test_flat_series_hits_positive_sentinel(self):
        returns = daily_returns(pd.Series([100.0] * 6))
        assert sortino_ratio(returns, cap=5.0) == 5.0

    def test_sentinel_follows_configured_cap(self):
        returns = daily_returns(pd.Series([100.0, 101.0, 102.0]))
        assert sortino_ratio(returns, cap=3.0) == 3.0

    def test_falling_series_is_negative_and_finite(self):
        returns = daily_returns(pd.Series([100.0, 98.0, 95.0, 93.0, 90.0]))
        value = sortino_ratio(returns)
        assert value < 0
        assert np.isfinite(value)

    def test_empty_returns(self):
        assert sortino_ratio(pd.Series([], dtype=float)) == 0.0


class TestDollarVolume:
    """Tests for average dollar volume sanitation."""

    def test_mean_of_volume_times_close(self):
        frame = pd.DataFrame({"close": [10.0, 20.0], "volume": [100.0, 300.0]})
        assert average_dollar_volume(frame) == 3500

    def test_nan_and_negative_rows_count_as_zero(self):
        frame = pd.DataFrame({"close": [10.0, 20.0, 30.0], "volume": [100.0, np.nan, -5.0]})
        # (1000 + 0 + 0) / 3
        assert average_dollar_volume(frame, "DIRTY") == 333


class TestHorizonStart:
    """Tests for calendar-month horizon arithmetic."""

    def test_month_end_is_clipped(self):
        assert horizon_start(date(2024, 3, 31), 1) == date(2024, 2, 29)

    def test_six_months(self):
        assert horizon_start(date(2024, 7, 1), 6) == date(2024, 1, 1)


class TestComputePeriodMetrics:
    """Tests for compute_period_metrics."""

    def test_reference_series(self):
        bars = make_bars("REF", [100.0, 90.0, 95.0, 110.0, 120.0])
        metrics = compute_period_metrics(bars, "REF")

        assert metrics is not None
        assert metrics.return_rate == pytest.approx(0.2)
        assert metrics.sortino_ratio == pytest.approx(0.5109, abs=1e-3)
        assert metrics.first_close == 100.0
        assert metrics.last_close == 120.0
        assert metrics.first_date < metrics.last_date

    def test_too_few_bars_is_no_data(self):
        bars = make_bars("SHORT", [100.0, 101.0, 102.0, 103.0])
        assert compute_period_metrics(bars, "SHORT") is None

    def test_uses_adjusted_close(self):
        bars = make_bars("ADJ", [100.0, 100.0, 100.0, 100.0, 100.0], adj_factor=0.5)
        metrics = compute_period_metrics(bars, "ADJ")
        assert metrics.first_close == 50.0

    def test_missing_adjusted_close_falls_back_to_close(self):
        bars = make_bars("RAW", [100.0, 102.0, 104.0, 106.0, 108.0], adj_factor=None)
        metrics = compute_period_metrics(bars, "RAW")
        assert metrics.last_close == 108.0
        assert metrics.sortino_ratio == LIMITS.sortino_cap

    def test_unsorted_bars_are_ordered_by_date(self):
        bars = make_bars("ORD", [100.0, 90.0, 95.0, 110.0, 120.0])
        metrics = compute_period_metrics(list(reversed(bars)), "ORD")
        assert metrics.return_rate == pytest.approx(0.2)

    def test_missing_volume_contributes_zero(self):
        bars = make_bars("NOVOL", [100.0] * 5, volume=None)
        metrics = compute_period_metrics(bars, "NOVOL")
        assert metrics.avg_dollar_volume == 0


class TestSixMonthChange:
    """Tests for the raw-close percent change."""

    def test_uses_raw_close(self):
        frame = bars_to_frame(make_bars("CHG", [100.0, 110.0, 125.0], adj_factor=0.5))
        assert six_month_change(frame) == 25.0

    def test_single_bar_frame(self):
        bar = PriceBar(symbol="ONE", date=date(2024, 1, 2), close=10.0)
        assert six_month_change(bars_to_frame([bar])) == 0.0
