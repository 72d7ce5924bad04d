"""Usage ledger: blob metadata rows per workspace.

Main entry points:
    from blob_ledger.ledger import upsert_blob_metadata, get_workspace_usage_size

    async with engine.connect() as conn:
        await upsert_blob_metadata(conn, workspace_id, "doc_1", "image/png", 2048)
        await conn.commit()
"""

from blob_ledger.ledger.schemas import (
    MAX_FILE_SIZE,
    BlobMetadataRecord,
    BulkInsertMeta,
    blob_metadata_key,
)
from blob_ledger.ledger.usage import (
    Store,
    UnitOfWork,
    clamp_usage,
    delete_blob_metadata,
    get_all_workspace_blob_ids,
    get_all_workspace_blob_metadata,
    get_blob_metadata,
    get_workspace_usage_size,
    insert_blob_metadata_bulk,
    is_blob_metadata_exists,
    upsert_blob_metadata,
)

__all__ = [
    "MAX_FILE_SIZE",
    "BlobMetadataRecord",
    "BulkInsertMeta",
    "Store",
    "UnitOfWork",
    "blob_metadata_key",
    "clamp_usage",
    "delete_blob_metadata",
    "get_all_workspace_blob_ids",
    "get_all_workspace_blob_metadata",
    "get_blob_metadata",
    "get_workspace_usage_size",
    "insert_blob_metadata_bulk",
    "is_blob_metadata_exists",
    "upsert_blob_metadata",
]
