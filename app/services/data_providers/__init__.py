"""Data providers - centralized external API access."""

from .yfinance_service import (
    YFinanceService,
    get_yfinance_service,
)


__all__ = [
    "YFinanceService",
    "get_yfinance_service",
]
