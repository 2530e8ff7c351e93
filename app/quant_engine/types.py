"""
Core type definitions for the momentum scoring engine.

All value objects are frozen dataclasses so a computed cross-section
cannot be mutated after it is staged for persistence.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from app.domain.fundamentals import FundamentalsSnapshot


class SkipCode(str, Enum):
    """Why an instrument was left out of a cross-section."""
    NO_HORIZON_DATA = "no_horizon_data"
    PRICE_SOURCE_ERROR = "price_source_error"
    SCREENED_OUT = "screened_out"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class CalendarWindow:
    """Resolved trading-date window for a run."""
    start: date
    end: date
    first_date: date
    last_date: date
    day_count: int


@dataclass(frozen=True)
class Candidate:
    """Instrument that passed price band, liquidity and completeness screens."""
    symbol: str
    avg_dollar_volume: float
    days_observed: int


@dataclass(frozen=True)
class PeriodMetrics:
    """Return and risk statistics for one instrument over one horizon."""
    first_date: date
    last_date: date
    first_close: float
    last_close: float
    return_rate: float
    sortino_ratio: float
    avg_dollar_volume: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_date": self.first_date.isoformat(),
            "last_date": self.last_date.isoformat(),
            "first_close": self.first_close,
            "last_close": self.last_close,
            "return_rate": self.return_rate,
            "sortino_ratio": self.sortino_ratio,
            "avg_dollar_volume": self.avg_dollar_volume,
        }


@dataclass(frozen=True)
class HorizonScores:
    """Per-horizon sub-scores and the composite, all within [0, 1]."""
    score_1m: float
    score_3m: float
    score_6m: float
    final_score: float

    def to_dict(self) -> dict[str, float]:
        return {
            "score_1m": self.score_1m,
            "score_3m": self.score_3m,
            "score_6m": self.score_6m,
            "final_score": self.final_score,
        }


@dataclass(frozen=True)
class MomentumRecord:
    """
    Momentum score for one instrument on one evaluation date.

    ``metrics`` is keyed by horizon length in months (1, 3, 6).
    """
    evaluation_date: date
    symbol: str
    metrics: dict[int, PeriodMetrics]
    rsi: float
    six_month_change: float
    fundamentals: FundamentalsSnapshot
    scores: HorizonScores
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def final_score(self) -> float:
        return self.scores.final_score

    def content_dict(self) -> dict[str, Any]:
        """Canonical content, excluding audit timestamps."""
        return {
            "evaluation_date": self.evaluation_date.isoformat(),
            "symbol": self.symbol,
            "metrics": {f"{h}m": m.to_dict() for h, m in sorted(self.metrics.items())},
            "rsi": self.rsi,
            "six_month_change": self.six_month_change,
            "fundamentals": {
                "revenue_growth": self.fundamentals.revenue_growth,
                "debt_to_equity": self.fundamentals.debt_to_equity,
                "price_to_book": self.fundamentals.price_to_book,
                "defaulted": self.fundamentals.defaulted,
            },
            "scores": self.scores.to_dict(),
        }

    def content_hash(self) -> str:
        """SHA-256 prefix of the canonical content for change detection."""
        content = json.dumps(self.content_dict(), sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def to_dict(self) -> dict[str, Any]:
        data = self.content_dict()
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


@dataclass(frozen=True)
class SkipReason:
    """Structured reason an instrument is missing from a cross-section."""
    symbol: str
    code: SkipCode
    detail: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"symbol": self.symbol, "code": self.code.value, "detail": self.detail}


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one recomputation run."""
    evaluation_date: date
    window: CalendarWindow
    candidates: int
    records: tuple[MomentumRecord, ...] = ()
    skipped: tuple[SkipReason, ...] = ()
    defaulted_fundamentals: tuple[str, ...] = ()
    duration_ms: int = 0

    @property
    def records_written(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluation_date": self.evaluation_date.isoformat(),
            "window": {
                "first_date": self.window.first_date.isoformat(),
                "last_date": self.window.last_date.isoformat(),
                "day_count": self.window.day_count,
            },
            "candidates": self.candidates,
            "records_written": self.records_written,
            "skipped": [s.to_dict() for s in self.skipped],
            "defaulted_fundamentals": list(self.defaulted_fundamentals),
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class RankingSummary:
    """Summary statistics for a ranked cross-section."""
    count: int
    top_score: float | None
    average_score: float | None

    @classmethod
    def from_scores(cls, scores: list[float]) -> "RankingSummary":
        if not scores:
            return cls(count=0, top_score=None, average_score=None)
        return cls(
            count=len(scores),
            top_score=round(max(scores), 4),
            average_score=round(sum(scores) / len(scores), 4),
        )


@dataclass(frozen=True)
class EvaluationDateInfo:
    """A stored cross-section's date, data window and size."""
    evaluation_date: date
    first_date: date | None
    last_date: date | None
    record_count: int


@dataclass
class RelativeScore:
    """Caller-weighted cross-sectional score for one instrument (unbounded)."""
    symbol: str
    score: float
    normalized: dict[str, float] = field(default_factory=dict)
    raw: dict[str, float] = field(default_factory=dict)
