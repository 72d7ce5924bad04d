"""Shared pytest fixtures for blob ledger tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import asyncpg
import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession, create_async_engine

from blob_ledger.config import settings
from blob_ledger.db import make_session_factory
from blob_ledger.ledger import BulkInsertMeta
from blob_ledger.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# Use a separate test database to avoid polluting development data
TEST_DATABASE_URL = settings.database_url.replace("/blob_ledger", "/blob_ledger_test")


@pytest.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine.

    This creates all tables at the start and drops them at the end. Tests
    depending on it are skipped when the test database is unreachable.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError, asyncpg.PostgresError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL test database unavailable: {exc}")

    yield engine

    # Cleanup: drop all tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_conn(test_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection, None]:
    """A connection inside a transaction that is rolled back at the end."""
    async with test_engine.connect() as conn:
        trans = await conn.begin()
        yield conn
        await trans.rollback()


@pytest.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session with transaction rollback."""
    async_session_factory = make_session_factory(test_engine)

    async with async_session_factory() as session:
        async with session.begin():
            yield session
            # Rollback to ensure test isolation
            await session.rollback()


@pytest.fixture
def workspace_id() -> UUID:
    return uuid4()


# Type aliases for factory fixtures
MakeEntry = Callable[..., BulkInsertMeta]


@pytest.fixture
def make_entry() -> MakeEntry:
    """Factory fixture for creating BulkInsertMeta entries."""

    def _make(
        *,
        object_id: str | None = None,
        file_id: str | None = None,
        file_type: str = "application/octet-stream",
        file_size: int = 1024,
    ) -> BulkInsertMeta:
        return BulkInsertMeta(
            object_id=object_id or f"obj_{uuid4().hex[:8]}",
            file_id=file_id or uuid4().hex,
            file_type=file_type,
            file_size=file_size,
        )

    return _make
