"""Blob metadata model: one row per blob known to a workspace."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from blob_ledger.models.base import Base


class BlobMetadata(Base):
    """Declared type and size of a blob, keyed by (workspace, file id).

    The blob bytes live elsewhere. Rows are written only through
    ``blob_ledger.ledger``; ``file_size`` is summed per workspace to compute
    storage usage.
    """

    __tablename__ = "af_blob_metadata"
    __table_args__ = (CheckConstraint("file_size >= 0", name="ck_af_blob_metadata_file_size"),)

    workspace_id: Mapped[UUID] = mapped_column(primary_key=True)
    file_id: Mapped[str] = mapped_column(Text, primary_key=True)
    file_type: Mapped[str] = mapped_column(Text)
    file_size: Mapped[int] = mapped_column(BigInteger)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
