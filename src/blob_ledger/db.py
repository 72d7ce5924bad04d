"""Database engine factories and schema management.

Nothing here is a process-wide singleton: callers build an engine, hand it
(or a connection/session drawn from it) to the ledger functions, and dispose
of it themselves.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from blob_ledger.config import settings
from blob_ledger.models import Base


def make_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine, defaulting to the configured database."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_size=settings.database_pool_size,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db(engine: AsyncEngine) -> None:
    """Drop and recreate all tables. Destroys every ledger row."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
