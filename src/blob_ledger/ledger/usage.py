"""Workspace blob-usage ledger.

Table access for ``af_blob_metadata``. Every function takes its store handle
as the first argument:

- ``AsyncEngine``: the statement runs in its own transaction, committed on
  success.
- ``AsyncConnection`` / ``AsyncSession``: the statement runs inside the
  caller's transaction. The ledger never commits or rolls it back.

Each call is a single statement. Concurrency control is left entirely to the
store: row locks and the ``ON CONFLICT`` clauses below.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import TypeAlias, cast
from uuid import UUID

import asyncpg
from sqlalchemy import (
    BigInteger,
    ColumnElement,
    Numeric,
    Table,
    Text,
    Uuid,
    bindparam,
    delete,
    exists,
    func,
    select,
)
from sqlalchemy import cast as sql_cast
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession
from sqlalchemy.sql.dml import Delete, Insert

from blob_ledger.errors import BlobMetadataNotFoundError, StoreFailureError
from blob_ledger.ledger.schemas import (
    BlobMetadataRecord,
    BulkInsertMeta,
    file_size_adapter,
)
from blob_ledger.models.blob_metadata import BlobMetadata

logger = logging.getLogger(__name__)

Store: TypeAlias = AsyncEngine | AsyncConnection | AsyncSession
UnitOfWork: TypeAlias = AsyncConnection | AsyncSession

U64_MAX = 2**64 - 1

blob_metadata = cast(Table, BlobMetadata.__table__)


@asynccontextmanager
async def _executor(store: Store, operation: str) -> AsyncIterator[UnitOfWork]:
    """Yield something to execute on, translating driver errors.

    Connect-time failures from asyncpg (refused connections, unresolvable
    hosts, rejected credentials) are not wrapped by SQLAlchemy and arrive as
    ``OSError`` or ``asyncpg.PostgresError``.
    """
    try:
        if isinstance(store, AsyncEngine):
            async with store.begin() as conn:
                yield conn
        else:
            yield store
    except (SQLAlchemyError, OSError, asyncpg.PostgresError) as exc:
        logger.error("%s: store failure: %s", operation, exc)
        raise StoreFailureError(operation, str(exc)) from exc


def clamp_usage(total: Decimal | int | None) -> int:
    """Convert a store-side sum to an unsigned 64-bit value.

    Fractions are truncated. Absent, negative or oversized sums become 0.
    """
    if total is None:
        return 0
    value = int(total)
    if value < 0 or value > U64_MAX:
        return 0
    return value


def _key_clause(workspace_id: UUID, file_id: str) -> ColumnElement[bool]:
    return (blob_metadata.c.workspace_id == workspace_id) & (blob_metadata.c.file_id == file_id)


def upsert_statement(workspace_id: UUID, file_id: str, file_type: str, file_size: int) -> Insert:
    stmt = pg_insert(blob_metadata).values(
        workspace_id=workspace_id,
        file_id=file_id,
        file_type=file_type,
        file_size=file_size,
    )
    return stmt.on_conflict_do_update(
        index_elements=[blob_metadata.c.workspace_id, blob_metadata.c.file_id],
        set_={
            "file_type": stmt.excluded.file_type,
            "file_size": stmt.excluded.file_size,
            "modified_at": func.now(),
        },
    )


def bulk_insert_statement(
    workspace_id: UUID,
    file_ids: Sequence[str],
    file_types: Sequence[str],
    file_sizes: Sequence[int],
) -> Insert:
    """INSERT ... SELECT unnest(...) ON CONFLICT DO NOTHING over bound arrays."""
    text_array = ARRAY(Text)
    size_array = ARRAY(BigInteger)
    rows = select(
        sql_cast(bindparam("workspace_id", workspace_id, type_=Uuid), Uuid),
        func.unnest(sql_cast(bindparam("file_ids", list(file_ids), type_=text_array), text_array)),
        func.unnest(sql_cast(bindparam("file_types", list(file_types), type_=text_array), text_array)),
        func.unnest(sql_cast(bindparam("file_sizes", list(file_sizes), type_=size_array), size_array)),
    )
    stmt = pg_insert(blob_metadata).from_select(
        ["workspace_id", "file_id", "file_type", "file_size"], rows
    )
    return stmt.on_conflict_do_nothing()


def delete_statement(workspace_id: UUID, file_id: str) -> Delete:
    return delete(blob_metadata).where(_key_clause(workspace_id, file_id))


async def is_blob_metadata_exists(store: Store, workspace_id: UUID, file_id: str) -> bool:
    """Whether a row exists for exactly this key."""
    stmt = select(exists().where(_key_clause(workspace_id, file_id)))
    async with _executor(store, "is_blob_metadata_exists") as conn:
        result = await conn.execute(stmt)
        return bool(result.scalar())


async def upsert_blob_metadata(
    store: Store,
    workspace_id: UUID,
    file_id: str,
    file_type: str,
    file_size: int,
) -> None:
    """Insert a row, or replace type and size of the existing one.

    A single ``INSERT ... ON CONFLICT DO UPDATE``. An affected-row count other
    than one is logged as an anomaly; the call still succeeds.

    Raises ``ValueError`` (a pydantic ``ValidationError``) before touching the
    store when ``file_size`` is negative or does not fit a bigint.
    """
    file_size = file_size_adapter.validate_python(file_size)
    stmt = upsert_statement(workspace_id, file_id, file_type, file_size)
    async with _executor(store, "upsert_blob_metadata") as conn:
        result = await conn.execute(stmt)
    n = result.rowcount
    if n != 1:
        logger.error(
            "upsert_blob_metadata: rows_affected: %s",
            n,
            extra={"workspace_id": str(workspace_id), "file_id": file_id, "rows_affected": n},
        )


async def insert_blob_metadata_bulk(
    store: Store,
    workspace_id: UUID,
    entries: Sequence[BulkInsertMeta],
) -> int:
    """Insert every entry whose derived key is absent; return rows inserted.

    Existing rows are never touched, so a bulk load cannot clobber metadata
    written concurrently by :func:`upsert_blob_metadata`. The whole batch is
    one statement.
    """
    if not entries:
        return 0

    file_ids = [entry.metadata_key for entry in entries]
    file_types = [entry.file_type for entry in entries]
    file_sizes = [entry.file_size for entry in entries]

    stmt = bulk_insert_statement(workspace_id, file_ids, file_types, file_sizes)
    async with _executor(store, "insert_blob_metadata_bulk") as conn:
        result = await conn.execute(stmt)
    inserted = result.rowcount
    logger.info(
        "insert_blob_metadata_bulk: workspace_id: %s, inserted: %s of %s",
        workspace_id,
        inserted,
        len(entries),
    )
    return inserted


async def delete_blob_metadata(uow: UnitOfWork, workspace_id: UUID, file_id: str) -> None:
    """Delete the row for this key inside the caller's unit of work.

    Deleting an absent key is a no-op.
    """
    if isinstance(uow, AsyncEngine):
        raise TypeError("delete_blob_metadata needs a connection or session, not an engine")
    async with _executor(uow, "delete_blob_metadata") as conn:
        result = await conn.execute(delete_statement(workspace_id, file_id))
    logger.info("delete_blob_metadata: rows_affected: %s", result.rowcount)


async def get_blob_metadata(store: Store, workspace_id: UUID, file_id: str) -> BlobMetadataRecord:
    """Point lookup. Raises :class:`BlobMetadataNotFoundError` on a miss."""
    logger.debug("get_blob_metadata: workspace_id: %s, file_id: %s", workspace_id, file_id)
    stmt = select(blob_metadata).where(_key_clause(workspace_id, file_id))
    async with _executor(store, "get_blob_metadata") as conn:
        result = await conn.execute(stmt)
        row = result.one_or_none()
    if row is None:
        raise BlobMetadataNotFoundError(workspace_id, file_id)
    return BlobMetadataRecord.model_validate(dict(row._mapping))


async def get_all_workspace_blob_metadata(
    store: Store, workspace_id: UUID
) -> list[BlobMetadataRecord]:
    """Return all blob metadata of a workspace, in no particular order."""
    stmt = select(blob_metadata).where(blob_metadata.c.workspace_id == workspace_id)
    async with _executor(store, "get_all_workspace_blob_metadata") as conn:
        result = await conn.execute(stmt)
        rows = result.all()
    return [BlobMetadataRecord.model_validate(dict(row._mapping)) for row in rows]


async def get_all_workspace_blob_ids(store: Store, workspace_id: UUID) -> list[str]:
    """Return all blob ids of a workspace."""
    stmt = select(blob_metadata.c.file_id).where(blob_metadata.c.workspace_id == workspace_id)
    async with _executor(store, "get_all_workspace_blob_ids") as conn:
        result = await conn.execute(stmt)
        return list(result.scalars().all())


async def get_workspace_usage_size(store: Store, workspace_id: UUID) -> int:
    """Return the total size of a workspace in bytes.

    The sum is evaluated as ``numeric`` by the store and clamped to an
    unsigned 64-bit value here.
    """
    stmt = select(func.sum(blob_metadata.c.file_size, type_=Numeric)).where(
        blob_metadata.c.workspace_id == workspace_id
    )
    async with _executor(store, "get_workspace_usage_size") as conn:
        result = await conn.execute(stmt)
        total = result.scalar()
    return clamp_usage(total)
