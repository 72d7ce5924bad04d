"""Error types raised by the usage ledger."""

from __future__ import annotations

from uuid import UUID


class LedgerError(Exception):
    """Base class for ledger failures."""


class BlobMetadataNotFoundError(LedgerError):
    """No row exists for the requested (workspace, file id) key."""

    def __init__(self, workspace_id: UUID, file_id: str) -> None:
        super().__init__(f"Blob metadata not found: workspace={workspace_id} file_id={file_id!r}")
        self.workspace_id = workspace_id
        self.file_id = file_id


class StoreFailureError(LedgerError):
    """The store rejected or failed to run a ledger statement.

    The driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
