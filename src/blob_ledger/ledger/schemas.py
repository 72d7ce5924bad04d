"""Pydantic value types exchanged with the usage ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Largest value a bigint column holds.
MAX_FILE_SIZE = 2**63 - 1

FileSize = Annotated[int, Field(ge=0, le=MAX_FILE_SIZE)]

file_size_adapter: TypeAdapter[int] = TypeAdapter(FileSize)


def blob_metadata_key(object_id: str, file_id: str) -> str:
    """Ledger key for a blob addressed as object id plus sub-path.

    Examples:
        blob_metadata_key("obj1", "abc") -> "obj1_abc"
    """
    return f"{object_id}_{file_id}"


class BlobMetadataRecord(BaseModel):
    """A row of the ledger as seen by callers."""

    model_config = ConfigDict(frozen=True)

    workspace_id: UUID
    file_id: str
    file_type: str
    file_size: FileSize
    modified_at: datetime | None = None


class BulkInsertMeta(BaseModel):
    """One entry of a bulk insert.

    The stored key is derived from ``object_id`` and ``file_id``; see
    :func:`blob_metadata_key`.
    """

    object_id: str
    file_id: str
    file_type: str
    file_size: FileSize

    @property
    def metadata_key(self) -> str:
        return blob_metadata_key(self.object_id, self.file_id)
