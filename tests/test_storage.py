"""Tests for the blob codec and storage backends."""

import asyncio
import json
from decimal import Decimal
from uuid import uuid4

import pytest

from community_fund.models import AuditEventBuilder
from community_fund.services.storage import (
    BlobFormatError,
    InMemoryAuditStorage,
    InMemoryBlobStorage,
    LocalFileBlobStorage,
    StorageError,
    blob_to_drafts,
    records_to_blob,
)


class TestCodec:
    """Tests for records_to_blob / blob_to_drafts."""

    def test_blob_uses_camel_case_keys(self, engine, make_record):
        """Test the stored key format."""
        view = engine.reconcile([make_record("January", 100000, 40000, contributors=["Ali"])])
        entry = json.loads(records_to_blob(view.records))[0]

        assert entry["month"] == "January"
        assert entry["contributorNames"] == ["Ali"]
        assert entry["amountCollected"] == "100000"
        assert entry["remainingBalance"] == "60000"
        assert "distributions" not in entry

    def test_stored_records_load_back(self, engine, store, make_record):
        """Test a written ledger reloads with ids and amounts intact."""
        view = engine.reconcile([
            make_record("February", "80000.50", 90000, record_id="feb"),
            make_record("January", 100000, 0, distributions=[("Mosque", "250.25")], record_id="jan"),
        ])
        store.load(blob_to_drafts(records_to_blob(view.records)))

        assert [r.id for r in store.snapshot()] == ["jan", "feb"]
        assert store.get("feb").amount_collected == Decimal("80000.50")
        assert store.get("jan").distributions[0].amount == Decimal("250.25")

    def test_invalid_json(self):
        """Test unparseable text."""
        with pytest.raises(BlobFormatError):
            blob_to_drafts("{not json")

    def test_not_an_array(self):
        """Test a JSON object instead of a list."""
        with pytest.raises(BlobFormatError):
            blob_to_drafts('{"month": "January"}')

    def test_item_not_an_object(self):
        """Test a list of scalars."""
        with pytest.raises(BlobFormatError):
            blob_to_drafts("[1, 2]")

    def test_malformed_item(self):
        """Test a non-numeric amount."""
        with pytest.raises(BlobFormatError):
            blob_to_drafts('[{"month": "January", "amountCollected": "lots"}]')

    def test_empty_array(self):
        """Test an empty stored ledger is valid."""
        assert blob_to_drafts("[]") == []


class TestLocalFileBlobStorage:
    """Tests for the on-disk blob."""

    def test_missing_file_reads_none(self, tmp_path):
        """Test nothing stored yet."""
        storage = LocalFileBlobStorage(tmp_path / "ledger.json")
        assert asyncio.run(storage.read_blob()) is None

    def test_write_then_read(self, tmp_path):
        """Test the blob is replaced as a whole."""
        storage = LocalFileBlobStorage(tmp_path / "nested" / "ledger.json")

        async def scenario():
            await storage.write_blob("[1]")
            await storage.write_blob("[2]")
            return await storage.read_blob()

        assert asyncio.run(scenario()) == "[2]"
        assert not (tmp_path / "nested" / "ledger.json.tmp").exists()

    def test_clear(self, tmp_path):
        """Test clear removes the file and tolerates a missing one."""
        storage = LocalFileBlobStorage(tmp_path / "ledger.json")

        async def scenario():
            await storage.write_blob("[]")
            await storage.clear()
            await storage.clear()
            return await storage.read_blob()

        assert asyncio.run(scenario()) is None

    def test_unreadable_path_raises_storage_error(self, tmp_path):
        """Test OS errors surface as StorageError."""
        storage = LocalFileBlobStorage(tmp_path)
        with pytest.raises(StorageError):
            asyncio.run(storage.read_blob())


class TestInMemoryStorage:
    """Tests for the in-memory backends."""

    def test_blob_storage_counts_writes(self):
        """Test write_count tracks write-through."""
        storage = InMemoryBlobStorage(initial="[]")

        async def scenario():
            await storage.write_blob("[1]")
            return await storage.read_blob()

        assert asyncio.run(scenario()) == "[1]"
        assert storage.write_count == 1

    def test_audit_queries(self):
        """Test correlation, entity and recency lookups."""
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        created = AuditEventBuilder.record_created(
            record_id="rec-1", period="January", actor="Administrator", correlation_id=correlation_id,
        )
        deleted = AuditEventBuilder.record_deleted(
            record_id="rec-1", period="January", actor="Administrator", correlation_id=uuid4(),
        )

        async def scenario():
            await storage.append_event(created)
            await storage.append_event(deleted)
            return (
                await storage.get_events_by_correlation_id(correlation_id),
                await storage.get_events_by_entity("record", "rec-1"),
                await storage.get_recent_events(limit=1),
            )

        by_correlation, by_entity, recent = asyncio.run(scenario())
        assert by_correlation == [created]
        assert by_entity == [created, deleted]
        assert recent == [deleted]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
