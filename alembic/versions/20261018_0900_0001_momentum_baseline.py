"""momentum_baseline

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _horizon_columns(suffix: str) -> list[sa.Column]:
    return [
        sa.Column(f"first_date_{suffix}", sa.Date, nullable=False),
        sa.Column(f"last_date_{suffix}", sa.Date, nullable=False),
        sa.Column(f"first_close_{suffix}", sa.Numeric(15, 4), nullable=False),
        sa.Column(f"last_close_{suffix}", sa.Numeric(15, 4), nullable=False),
        sa.Column(f"return_rate_{suffix}", sa.Numeric(15, 6), nullable=False),
        sa.Column(f"sortino_ratio_{suffix}", sa.Numeric(15, 6), nullable=False),
        sa.Column(f"avg_dollar_volume_{suffix}", sa.BigInteger, nullable=False),
    ]


def upgrade() -> None:
    """Create price history and momentum record tables."""
    op.create_table(
        "price_history",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("symbol", sa.String(20), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("open", sa.Numeric(16, 6)),
        sa.Column("high", sa.Numeric(16, 6)),
        sa.Column("low", sa.Numeric(16, 6)),
        sa.Column("close", sa.Numeric(16, 6), nullable=False),
        sa.Column("adj_close", sa.Numeric(16, 6)),
        sa.Column("volume", sa.BigInteger),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.UniqueConstraint("symbol", "date", name="uq_price_history"),
    )
    op.create_index("idx_price_history_symbol", "price_history", ["symbol"])
    op.create_index("idx_price_history_date", "price_history", [sa.text("date DESC")])
    op.create_index("idx_price_history_symbol_date", "price_history", ["symbol", "date"])

    op.create_table(
        "momentum_records",
        sa.Column("evaluation_date", sa.Date, primary_key=True),
        sa.Column("symbol", sa.String(20), primary_key=True),
        *_horizon_columns("1m"),
        *_horizon_columns("3m"),
        *_horizon_columns("6m"),
        sa.Column("rsi", sa.Numeric(8, 4), nullable=False),
        sa.Column("six_month_change", sa.Numeric(15, 4), nullable=False),
        sa.Column("revenue_growth", sa.Numeric(15, 6), nullable=False),
        sa.Column("debt_to_equity", sa.Numeric(15, 6), nullable=False),
        sa.Column("price_to_book", sa.Numeric(15, 6), nullable=False),
        sa.Column("fundamentals_defaulted", sa.Boolean, nullable=False, server_default=sa.text("FALSE")),
        sa.Column("score_1m", sa.Numeric(8, 6), nullable=False),
        sa.Column("score_3m", sa.Numeric(8, 6), nullable=False),
        sa.Column("score_6m", sa.Numeric(8, 6), nullable=False),
        sa.Column("final_score", sa.Numeric(8, 6), nullable=False),
        sa.Column("content_hash", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("final_score >= 0 AND final_score <= 1", name="ck_momentum_records_final_score_range"),
        sa.CheckConstraint("score_1m >= 0 AND score_1m <= 1", name="ck_momentum_records_score_1m_range"),
        sa.CheckConstraint("score_3m >= 0 AND score_3m <= 1", name="ck_momentum_records_score_3m_range"),
        sa.CheckConstraint("score_6m >= 0 AND score_6m <= 1", name="ck_momentum_records_score_6m_range"),
    )
    op.create_index(
        "idx_momentum_records_date_score",
        "momentum_records",
        ["evaluation_date", "final_score"],
    )


def downgrade() -> None:
    """Drop momentum tables."""
    op.drop_index("idx_momentum_records_date_score", table_name="momentum_records")
    op.drop_table("momentum_records")
    op.drop_index("idx_price_history_symbol_date", table_name="price_history")
    op.drop_index("idx_price_history_date", table_name="price_history")
    op.drop_index("idx_price_history_symbol", table_name="price_history")
    op.drop_table("price_history")
