"""Data access layer repositories.

Each repository module provides async functions for database operations.
All code uses SQLAlchemy ORM models from `app.database.orm` with the
`get_session()` context manager.

ORM-based repositories:
- price_history_orm: read-only daily bars (PriceHistorySource)
- momentum_records_orm: momentum cross-sections (MomentumStore)
"""

from . import momentum_records_orm
from . import price_history_orm

__all__ = [
    "momentum_records_orm",
    "price_history_orm",
]
