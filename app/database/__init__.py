"""Database module: async engine, sessions and ORM models."""

from .connection import (
    async_database_url,
    close_database,
    db_healthcheck,
    get_session,
    get_session_factory,
    init_database,
)
from .orm import (
    Base,
    MomentumRecordRow,
    PriceHistory,
)


__all__ = [
    "async_database_url",
    "init_database",
    "close_database",
    "get_session",
    "get_session_factory",
    "db_healthcheck",
    "Base",
    "MomentumRecordRow",
    "PriceHistory",
]
