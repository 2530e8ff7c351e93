"""
Momentum Engine Central Configuration.

ALL thresholds, sentinels and weights are defined HERE and ONLY HERE.
No hardcoded values anywhere else in the momentum engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping


def _weights(**kwargs: float) -> Mapping[str, float]:
    return MappingProxyType(dict(kwargs))


# Signal keys shared by both normalization strategies
SIGNALS: tuple[str, ...] = (
    "return_rate",
    "sortino_ratio",
    "revenue_growth",
    "rsi",
    "debt_to_equity",
    "price_to_book",
)


@dataclass(frozen=True)
class MomentumLimits:
    """
    Central limits for the momentum scoring engine.

    Thresholds are LIMITS and FILTERS; scoring weights are fixed policy.
    """

    # =========================================================================
    # CALENDAR & CANDIDATE SCREENING
    # =========================================================================

    # Fewer distinct trading days than this in the window aborts the run
    min_trading_days: int = 15

    # An instrument must trade on at least this share of the window's days
    completeness_ratio: float = 0.9

    # Close must stay inside [min_price, max_price] on every bar in the window
    min_price: float = 50.0
    max_price: float = 2000.0

    # Liquidity floor on mean(volume x close) over the window
    min_avg_dollar_volume: float = 500_000_000.0

    # =========================================================================
    # PERIOD METRICS
    # =========================================================================

    # Lookback horizons in calendar months, shortest first
    horizons_months: tuple[int, ...] = (1, 3, 6)

    # Minimum bars inside one horizon; fewer means "no data" for that horizon
    min_bars_per_horizon: int = 5

    # Bounded Sortino sentinel used when downside deviation is zero
    sortino_cap: float = 5.0

    # =========================================================================
    # OSCILLATOR
    # =========================================================================

    rsi_period: int = 14
    rsi_neutral: float = 50.0

    # =========================================================================
    # FUNDAMENTALS POLICY
    # =========================================================================

    default_revenue_growth: float = 0.0
    default_debt_to_equity: float = 1.0
    default_price_to_book: float = 1.5

    # Values above the outlier threshold, or outside the valid range,
    # are replaced by the cap value
    debt_to_equity_outlier: float = 50.0
    debt_to_equity_valid: tuple[float, float] = (0.0, 100.0)
    debt_to_equity_cap: float = 10.0

    price_to_book_outlier: float = 100.0
    price_to_book_valid: tuple[float, float] = (0.0, 50.0)
    price_to_book_cap: float = 20.0

    # =========================================================================
    # ABSOLUTE (FIXED-DOMAIN) NORMALIZATION
    # =========================================================================

    return_domain: tuple[float, float] = (-1.0, 1.0)
    sortino_domain: tuple[float, float] = (-3.0, 3.0)
    revenue_growth_domain: tuple[float, float] = (-0.5, 0.5)

    # Ratios below this floor score as 1.0 (leverage and valuation)
    ratio_floor: float = 0.1

    # Per-horizon weights over SIGNALS; each row sums to 1
    horizon_weights: Mapping[int, Mapping[str, float]] = field(
        default_factory=lambda: MappingProxyType({
            1: _weights(return_rate=0.35, sortino_ratio=0.20, revenue_growth=0.20,
                        rsi=0.15, debt_to_equity=0.05, price_to_book=0.05),
            3: _weights(return_rate=0.30, sortino_ratio=0.25, revenue_growth=0.25,
                        rsi=0.10, debt_to_equity=0.05, price_to_book=0.05),
            6: _weights(return_rate=0.25, sortino_ratio=0.25, revenue_growth=0.30,
                        rsi=0.05, debt_to_equity=0.10, price_to_book=0.05),
        })
    )

    # Composite = sum(weight x horizon sub-score)
    composite_weights: Mapping[int, float] = field(
        default_factory=lambda: MappingProxyType({1: 0.40, 3: 0.35, 6: 0.25})
    )

    # =========================================================================
    # RELATIVE (CROSS-SECTIONAL) NORMALIZATION
    # =========================================================================

    # RSI mapped as clamp((rsi - low) / (high - low), 0, 1)
    relative_rsi_band: tuple[float, float] = (30.0, 70.0)

    # Default caller weights for the relative view (not required to sum to 1)
    relative_default_weights: Mapping[str, float] = field(
        default_factory=lambda: _weights(
            return_rate=0.30, sortino_ratio=0.25, revenue_growth=0.20,
            rsi=0.10, debt_to_equity=0.10, price_to_book=0.05,
        )
    )

    # =========================================================================
    # OPTIONAL SCREENS (disabled when None)
    # =========================================================================

    # Skip instruments whose longest-horizon return is below this
    min_return_rate: float | None = None

    # Skip instruments whose longest-horizon Sortino is at or below this
    min_sortino_ratio: float | None = None

    # =========================================================================
    # STORAGE PRECISION
    # =========================================================================

    ratio_decimals: int = 6
    price_decimals: int = 4

    @property
    def longest_horizon(self) -> int:
        return max(self.horizons_months)

    def with_overrides(self, **changes) -> "MomentumLimits":
        """Return a copy with some limits replaced."""
        return replace(self, **changes)


# Default limits instance
LIMITS = MomentumLimits()


def limits_from_settings() -> MomentumLimits:
    """Build limits with the environment-configurable overrides applied."""
    from app.core.config import settings

    return LIMITS.with_overrides(
        min_price=settings.momentum_min_price,
        max_price=settings.momentum_max_price,
        min_avg_dollar_volume=settings.momentum_min_dollar_volume,
        sortino_cap=settings.momentum_sortino_cap,
    )
