"""Trading calendar resolution for a recomputation window."""

from __future__ import annotations

from datetime import date

from app.core.exceptions import InsufficientCalendarData
from app.core.logging import get_logger

from .config import LIMITS, MomentumLimits
from .ports import PriceHistorySource
from .types import CalendarWindow


logger = get_logger("quant_engine.calendar")


async def resolve_calendar(
    prices: PriceHistorySource,
    start: date,
    end: date,
    limits: MomentumLimits = LIMITS,
) -> CalendarWindow:
    """
    Resolve the usable trading-date window inside [start, end].

    Raises:
        InsufficientCalendarData: fewer than ``limits.min_trading_days``
            distinct trading dates exist in range.
    """
    dates = sorted(set(await prices.list_trading_dates(start, end)))

    if len(dates) < limits.min_trading_days:
        logger.info(
            f"Calendar {start}..{end}: {len(dates)} trading days "
            f"(need {limits.min_trading_days})"
        )
        raise InsufficientCalendarData(
            found=len(dates),
            required=limits.min_trading_days,
            start=start,
            end=end,
        )

    window = CalendarWindow(
        start=start,
        end=end,
        first_date=dates[0],
        last_date=dates[-1],
        day_count=len(dates),
    )
    logger.info(
        f"Calendar resolved: {window.first_date}..{window.last_date} "
        f"({window.day_count} trading days)"
    )
    return window
