"""Tests for ledger value types and key derivation."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from blob_ledger.ledger import MAX_FILE_SIZE, BlobMetadataRecord, BulkInsertMeta, blob_metadata_key


class TestBlobMetadataKey:
    def test_joins_object_and_file_with_underscore(self) -> None:
        assert blob_metadata_key("obj1", "abc") == "obj1_abc"

    def test_keeps_existing_underscores(self) -> None:
        assert blob_metadata_key("a_b", "c_d") == "a_b_c_d"

    def test_bulk_entry_uses_same_rule(self) -> None:
        entry = BulkInsertMeta(object_id="obj1", file_id="abc", file_type="image/png", file_size=1)
        assert entry.metadata_key == "obj1_abc"


class TestFileSizeValidation:
    def test_zero_is_allowed(self) -> None:
        entry = BulkInsertMeta(object_id="o", file_id="f", file_type="t", file_size=0)
        assert entry.file_size == 0

    def test_max_bigint_is_allowed(self) -> None:
        entry = BulkInsertMeta(object_id="o", file_id="f", file_type="t", file_size=MAX_FILE_SIZE)
        assert entry.file_size == 2**63 - 1

    @pytest.mark.parametrize("size", [-1, 2**63])
    def test_out_of_range_is_rejected(self, size: int) -> None:
        with pytest.raises(ValidationError):
            BulkInsertMeta(object_id="o", file_id="f", file_type="t", file_size=size)


class TestBlobMetadataRecord:
    def test_record_is_frozen(self) -> None:
        record = BlobMetadataRecord(
            workspace_id=uuid4(), file_id="f", file_type="text/plain", file_size=10
        )
        with pytest.raises(ValidationError):
            record.file_size = 20  # type: ignore[misc]

    def test_modified_at_is_optional(self) -> None:
        record = BlobMetadataRecord(
            workspace_id=uuid4(), file_id="f", file_type="text/plain", file_size=10
        )
        assert record.modified_at is None
