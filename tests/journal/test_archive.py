"""Tests for archive retention."""

import pytest

from chronicle.core.storage import MemoryDocumentStore
from chronicle.journal import ArchiveRetention, JournalService, PipelineConfig


class TestArchiveOnDelete:
    @pytest.mark.asyncio
    async def test_delete_produces_one_archive_record(self, journal):
        entry_id = await journal.add_entry("to be archived", image_ref="img/1.png")
        assert await journal.delete_entry(entry_id) is True

        archived = await journal.list_archived()
        assert len(archived) == 1
        assert archived[0].original_id == entry_id
        assert archived[0].text == "to be archived"
        assert archived[0].image_ref == "img/1.png"
        assert archived[0].deleted_at
        assert await journal.entries.get_entry(entry_id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_entry(self, journal):
        assert await journal.delete_entry("ghost") is False
        assert await journal.list_archived() == []

    @pytest.mark.asyncio
    async def test_archive_bounded_to_limit(self, journal):
        ids = [await journal.add_entry(f"entry {i}") for i in range(35)]
        for entry_id in ids:
            await journal.delete_entry(entry_id)

        archived = await journal.list_archived()
        assert len(archived) == 30
        assert {a.original_id for a in archived} == set(ids[5:])
        assert archived[0].original_id == ids[-1]

    @pytest.mark.asyncio
    async def test_archive_failure_does_not_block_delete(self, store, monkeypatch):
        journal = JournalService(store, "u1")
        entry_id = await journal.add_entry("fragile")
        original_insert = store.insert

        async def failing_insert(collection, data, doc_id=None):
            if collection.endswith("/archive"):
                raise RuntimeError("archive unavailable")
            return await original_insert(collection, data, doc_id)

        monkeypatch.setattr(store, "insert", failing_insert)
        assert await journal.delete_entry(entry_id) is True
        assert await journal.entries.get_entry(entry_id) is None
        assert await journal.list_archived() == []


class TestTrim:
    async def _fill(self, retention, n):
        for i in range(n):
            await retention.archive(f"e{i}", {"text": f"t{i}"})

    @pytest.mark.asyncio
    async def test_trim_noop_under_limit(self, store):
        retention = ArchiveRetention(store, "u1", PipelineConfig(archive_limit=5))
        await self._fill(retention, 3)
        assert await retention.trim() == 0

    @pytest.mark.asyncio
    async def test_trim_point_deletes(self, store):
        retention = ArchiveRetention(store, "u1", PipelineConfig(archive_limit=2))
        await self._fill(retention, 5)
        assert await retention.trim() == 3
        assert [a.original_id for a in await retention.list_archived()] == ["e4", "e3"]

    @pytest.mark.asyncio
    async def test_trim_batched_in_chunks(self):
        store = MemoryDocumentStore(max_batch_writes=2)
        retention = ArchiveRetention(store, "u1", PipelineConfig(archive_limit=1))
        await self._fill(retention, 6)
        assert await retention.trim(batched=True) == 5
        assert [a.original_id for a in await retention.list_archived()] == ["e5"]

    @pytest.mark.asyncio
    async def test_zero_limit_evicts_everything(self, store):
        retention = ArchiveRetention(store, "u1", PipelineConfig(archive_limit=0))
        await self._fill(retention, 3)
        assert await retention.trim() == 3
        assert await retention.list_archived() == []
