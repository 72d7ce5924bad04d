"""Database models for the blob ledger."""

from blob_ledger.models.base import Base
from blob_ledger.models.blob_metadata import BlobMetadata

__all__ = [
    "Base",
    "BlobMetadata",
]
