"""SQLAlchemy ORM models for the momentum ranking service.

Tables are defined in SQLAlchemy 2.0 ORM style and used through async
sessions on the asyncpg driver.

Usage:
    from app.database.orm import PriceHistory, MomentumRecordRow
    from app.database.connection import get_session

    async with get_session() as session:
        bar = await session.get(PriceHistory, 1)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    MetaData,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Naming convention for constraints and indexes (deterministic names for Alembic)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# PRICE HISTORY (written by the ingestion collaborator, read-only here)
# =============================================================================


class PriceHistory(Base):
    """Daily OHLCV bar per symbol."""
    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    open: Mapped[Decimal | None] = mapped_column(Numeric(16, 6))
    high: Mapped[Decimal | None] = mapped_column(Numeric(16, 6))
    low: Mapped[Decimal | None] = mapped_column(Numeric(16, 6))
    close: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    adj_close: Mapped[Decimal | None] = mapped_column(Numeric(16, 6))
    volume: Mapped[int | None] = mapped_column(BigInteger)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("symbol", "date", name="uq_price_history"),
        Index("idx_price_history_symbol", "symbol"),
        Index("idx_price_history_date", "date", postgresql_ops={"date": "DESC"}),
        Index("idx_price_history_symbol_date", "symbol", "date"),
    )


# =============================================================================
# MOMENTUM RECORDS
# =============================================================================


class MomentumRecordRow(Base):
    """
    One stored momentum score per (evaluation_date, symbol).

    Rows for an evaluation date are only ever replaced as a whole
    cross-section, inside a single transaction.
    """
    __tablename__ = "momentum_records"

    evaluation_date: Mapped[date] = mapped_column(Date, primary_key=True)
    symbol: Mapped[str] = mapped_column(String(20), primary_key=True)

    # 1M horizon
    first_date_1m: Mapped[date] = mapped_column(Date, nullable=False)
    last_date_1m: Mapped[date] = mapped_column(Date, nullable=False)
    first_close_1m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    last_close_1m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    return_rate_1m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    sortino_ratio_1m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    avg_dollar_volume_1m: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # 3M horizon
    first_date_3m: Mapped[date] = mapped_column(Date, nullable=False)
    last_date_3m: Mapped[date] = mapped_column(Date, nullable=False)
    first_close_3m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    last_close_3m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    return_rate_3m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    sortino_ratio_3m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    avg_dollar_volume_3m: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # 6M horizon
    first_date_6m: Mapped[date] = mapped_column(Date, nullable=False)
    last_date_6m: Mapped[date] = mapped_column(Date, nullable=False)
    first_close_6m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    last_close_6m: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    return_rate_6m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    sortino_ratio_6m: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    avg_dollar_volume_6m: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Oscillator and price change over the longest horizon
    rsi: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    six_month_change: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)

    # Fundamentals snapshot (after defaults and capping)
    revenue_growth: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    debt_to_equity: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    price_to_book: Mapped[Decimal] = mapped_column(Numeric(15, 6), nullable=False)
    fundamentals_defaulted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Scores (absolute strategy, all within [0, 1])
    score_1m: Mapped[Decimal] = mapped_column(Numeric(8, 6), nullable=False)
    score_3m: Mapped[Decimal] = mapped_column(Numeric(8, 6), nullable=False)
    score_6m: Mapped[Decimal] = mapped_column(Numeric(8, 6), nullable=False)
    final_score: Mapped[Decimal] = mapped_column(Numeric(8, 6), nullable=False)

    content_hash: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("final_score >= 0 AND final_score <= 1", name="final_score_range"),
        CheckConstraint("score_1m >= 0 AND score_1m <= 1", name="score_1m_range"),
        CheckConstraint("score_3m >= 0 AND score_3m <= 1", name="score_3m_range"),
        CheckConstraint("score_6m >= 0 AND score_6m <= 1", name="score_6m_range"),
        Index("idx_momentum_records_date_score", "evaluation_date", "final_score"),
    )
