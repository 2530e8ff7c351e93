"""Domain models for strongly-typed data throughout the application.

Pydantic models that serve as the source of truth for data passed
between repositories, providers and the momentum engine.

Usage:
    from app.domain import PriceBar, FundamentalsData

    bars: list[PriceBar] = await price_history_repo.get_bars("AAPL", start, end)
    data: FundamentalsData | None = await yfinance_service.get_fundamentals("AAPL")
"""

from app.domain.price import (
    PriceBar,
    bars_to_frame,
)
from app.domain.fundamentals import (
    FundamentalsData,
    FundamentalsSnapshot,
)

__all__ = [
    # Price
    "PriceBar",
    "bars_to_frame",
    # Fundamentals
    "FundamentalsData",
    "FundamentalsSnapshot",
]
