"""Fundamentals domain models.

``FundamentalsData`` is what a provider returns (any field may be missing).
``FundamentalsSnapshot`` is what the engine stores after applying its
default and outlier-capping policy.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field


class FundamentalsData(BaseModel):
    """Raw growth, leverage and valuation ratios from a provider."""

    symbol: str = Field(..., description="Ticker symbol")
    revenue_growth: float | None = Field(None, description="Revenue growth (YoY, fraction)")
    debt_to_equity: float | None = Field(None, description="Debt to equity as a plain ratio (1.5 = 150%)")
    price_to_book: float | None = Field(None, description="Price to book value")

    model_config = {
        "from_attributes": True,
        "extra": "ignore",
    }

    @computed_field
    @property
    def fields_available(self) -> int:
        """Count of available fundamental fields."""
        fields = [self.revenue_growth, self.debt_to_equity, self.price_to_book]
        return sum(1 for f in fields if f is not None)

    @classmethod
    def from_ticker_info(cls, symbol: str, info: dict) -> "FundamentalsData":
        """Create from a yfinance ``Ticker.info`` dictionary.

        yfinance reports ``debtToEquity`` in percent (150.0 means 1.5x);
        it is converted to a plain ratio here so defaults, caps and scoring
        all work in the same unit.

        Args:
            symbol: Ticker symbol the info was requested for
            info: Raw ticker info dictionary from yfinance

        Returns:
            FundamentalsData instance
        """
        debt_to_equity_pct = info.get("debtToEquity")
        return cls(
            symbol=symbol.upper(),
            revenue_growth=info.get("revenueGrowth"),
            debt_to_equity=debt_to_equity_pct / 100.0 if debt_to_equity_pct is not None else None,
            price_to_book=info.get("priceToBook"),
        )


class FundamentalsSnapshot(BaseModel):
    """Fundamentals after defaults and capping; always fully populated."""

    revenue_growth: float = Field(..., description="Revenue growth (YoY, fraction)")
    debt_to_equity: float = Field(..., ge=0, description="Capped debt to equity ratio")
    price_to_book: float = Field(..., ge=0, description="Capped price to book value")
    defaulted: bool = Field(
        default=False, description="True when any field fell back to its default"
    )

    model_config = {
        "frozen": True,
    }
