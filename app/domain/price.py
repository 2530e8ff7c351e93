"""Price domain models.

Type-safe representations of daily price bars as read from price history.
Bars are produced by the ingestion collaborator and are never validated
into shape here beyond types: dirty rows (missing adjusted close, negative
volume) are sanitized by the engine where they are consumed.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date as DateType

import pandas as pd
from pydantic import BaseModel, Field, computed_field


class PriceBar(BaseModel):
    """Single daily OHLCV bar for one symbol."""

    symbol: str = Field(..., description="Ticker symbol")
    date: DateType = Field(..., description="Trading date")
    open: float | None = Field(None, description="Opening price")
    high: float | None = Field(None, description="High price")
    low: float | None = Field(None, description="Low price")
    close: float = Field(..., description="Closing price")
    adj_close: float | None = Field(None, description="Split/dividend adjusted close")
    volume: int | None = Field(None, description="Shares traded")

    model_config = {
        "from_attributes": True,
    }

    @computed_field
    @property
    def adjusted(self) -> float:
        """Adjusted close, falling back to the raw close when missing."""
        return self.adj_close if self.adj_close is not None else self.close


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """Convert bars to a DataFrame indexed by date, ascending.

    Columns: ``close``, ``adj_close`` (raw close where adjusted is missing),
    ``volume`` (float, NaN where missing).
    """
    if not bars:
        return pd.DataFrame(columns=["close", "adj_close", "volume"])

    df = pd.DataFrame(
        {
            "date": [bar.date for bar in bars],
            "close": [float(bar.close) for bar in bars],
            "adj_close": [float(bar.adjusted) for bar in bars],
            "volume": [float(bar.volume) if bar.volume is not None else float("nan") for bar in bars],
        }
    )
    df = df.drop_duplicates(subset="date", keep="last").set_index("date").sort_index()
    return df
