"""Async SQLAlchemy engine and sessions (asyncpg driver).

Usage:
    from app.database.connection import get_session

    async with get_session() as session:
        await session.execute(...)
        await session.commit()

Anything raised inside the block rolls the session back, which is what
keeps a failed ``replace_records`` from exposing a half-written date.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger("database")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def async_database_url(url: str) -> str:
    """Force the asyncpg driver onto a ``postgres://`` or ``postgresql://`` URL."""
    parsed = make_url(url)
    if parsed.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
        parsed = parsed.set(drivername="postgresql+asyncpg")
    return parsed.render_as_string(hide_password=False)


async def init_database() -> AsyncEngine:
    """Create the engine and session factory once."""
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    _engine = create_async_engine(
        async_database_url(settings.database_url),
        pool_size=settings.db_pool_min_size,
        max_overflow=settings.db_pool_max_size - settings.db_pool_min_size,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"server_settings": {"application_name": "momentum-ranker", "timezone": "UTC"}},
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.info(
        f"Database engine ready (pool {settings.db_pool_min_size}..{settings.db_pool_max_size})"
    )
    return _engine


async def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        await init_database()
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Session that rolls back on any error raised inside the block."""
    factory = await get_session_factory()

    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def db_healthcheck() -> bool:
    """``SELECT 1`` round trip."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database healthcheck failed: {e}")
        return False


async def close_database() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")
