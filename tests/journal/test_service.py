"""End-to-end tests for JournalService."""

from datetime import datetime

import pytest

from chronicle.core.storage import LocalDocumentStore
from chronicle.journal import JournalService, PipelineConfig


class TestJournalService:
    @pytest.mark.asyncio
    async def test_delete_keeps_month_count(self, journal):
        entry_id = await journal.add_entry("hello", created_at=datetime(2025, 4, 1, 12, 0))
        await journal.delete_entry(entry_id)
        months = await journal.list_months()
        assert months[0].month_key == "2025-04"
        assert months[0].count == 1

    @pytest.mark.asyncio
    async def test_shared_config_reaches_components(self, store):
        config = PipelineConfig(archive_limit=2, sample_size=3)
        journal = JournalService(store, "u1", config)
        assert journal.entries.config is config
        assert journal.archive.config is config
        assert journal.months.config is config

        for i in range(5):
            await journal.add_entry(f"entry {i}", created_at=datetime(2025, 4, 2, 12, 0))
        assert len((await journal.list_months())[0].samples) == 3

        for entry in await journal.list_entries():
            await journal.delete_entry(entry.id)
        assert len(await journal.list_archived()) == 2

    @pytest.mark.asyncio
    async def test_full_cycle_on_disk(self, tmp_path):
        store = await LocalDocumentStore.open(str(tmp_path / "store"))
        journal = JournalService(store, "u1")
        result = await journal.import_text("2025-01-01 : one\n~`~\n2025-01-02 : two")
        manual = await journal.add_entry("manual")
        await journal.delete_entry(manual)
        await store.close()

        reopened = JournalService(await LocalDocumentStore.open(str(tmp_path / "store")), "u1")
        assert {e.id for e in await reopened.list_entries()} == set(result.entry_ids)
        assert [a.original_id for a in await reopened.list_archived()] == [manual]
        assert (await reopened.list_batches())[0].batch_id == result.batch_id
        assert await reopened.undo_batch(result.batch_id) == 2
        assert await reopened.list_entries() == []
