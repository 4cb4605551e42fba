"""Application-level journal operations for one user.

Wires EntryStore, month indexing, batch import/undo, the archive and bulk
deletion over a shared DocumentStore. Deleting through this facade always
archives first; ``EntryStore.delete_entry`` is the raw point delete.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from ..core.storage import DocumentStore
from .archive import ArchiveRetention
from .batches import BatchRegistry
from .bulk_delete import BulkDeleteEngine, EntryPredicate
from .config import PipelineConfig
from .importer import BatchImporter, ImportResult, ProgressCallback
from .models import ArchivedEntry, Batch, Entry, ImportRecord, MonthIndex
from .month_index import MonthIndexAggregator
from .store import EntryStore


class JournalService:
    """Facade over the ingestion pipeline.

    Example::

        journal = JournalService(store, uid="u1")
        await journal.add_entry("First light over the bay.")
        result = await journal.import_text(Path("export.txt").read_text())
        await journal.undo_batch(result.batch_id)
    """

    def __init__(self, store: DocumentStore, uid: str, config: PipelineConfig | None = None):
        self.store = store
        self.uid = uid
        self.config = config or PipelineConfig()
        self.months = MonthIndexAggregator(store, uid, self.config)
        self.entries = EntryStore(store, uid, config=self.config, aggregator=self.months)
        self.batches = BatchRegistry(store, self.entries)
        self.archive = ArchiveRetention(store, uid, self.config)
        self.importer = BatchImporter(self.entries, self.batches)
        self.bulk = BulkDeleteEngine(store, self.entries, self.archive, self.config)

    # -- Entries -------------------------------------------------------------

    async def add_entry(
        self,
        text: str,
        *,
        created_at: datetime | None = None,
        image_ref: str | None = None,
    ) -> str:
        return await self.entries.add_entry(text, created_at=created_at, image_ref=image_ref)

    async def list_entries(self) -> list[Entry]:
        return await self.entries.list_entries()

    async def delete_entry(self, entry_id: str) -> bool:
        """Archive an entry (best effort), trim the archive, then delete it.

        Returns True if the entry existed.
        """
        snap = await self.entries.get_document(entry_id)
        if snap.exists and await self.archive.archive(entry_id, snap.data or {}):
            try:
                await self.archive.trim()
            except Exception as e:
                logger.warning(f"Archive trim failed after deleting {entry_id}: {e}")
        return await self.entries.delete_entry(entry_id)

    # -- Import / undo -------------------------------------------------------

    async def import_text(self, text: str, on_progress: ProgressCallback | None = None) -> ImportResult:
        return await self.importer.import_text(text, on_progress)

    async def import_entries(
        self,
        records: Iterable[ImportRecord],
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        return await self.importer.import_entries(records, on_progress)

    async def undo_batch(self, batch_id: str) -> int:
        return await self.batches.delete_batch(batch_id)

    async def list_batches(self) -> list[Batch]:
        return await self.batches.list_batches()

    async def batch_entry_counts(self) -> dict[str, int]:
        return await self.batches.entry_counts()

    # -- Bulk delete / archive -----------------------------------------------

    async def bulk_delete(self, predicate: EntryPredicate) -> int:
        return await self.bulk.bulk_delete(predicate)

    async def delete_imported(self, batch_ids: Iterable[str] | None = None) -> int:
        return await self.bulk.delete_imported(batch_ids)

    async def list_archived(self) -> list[ArchivedEntry]:
        return await self.archive.list_archived()

    # -- Month index ---------------------------------------------------------

    async def list_months(self) -> list[MonthIndex]:
        return await self.months.list_months()
