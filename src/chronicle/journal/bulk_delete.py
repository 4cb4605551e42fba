"""Bulk deletion through chunked batched writes.

Matching entries are archived one by one, then removed in atomic chunks
capped at the provider's batch-write limit. Chunks are atomic on their
own but not across each other; a failure between chunks leaves earlier
chunks deleted and later entries in place.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from loguru import logger

from ..core.storage import DocumentStore, WriteBatch
from .archive import ArchiveRetention
from .config import PipelineConfig
from .models import Entry
from .store import EntryStore

EntryPredicate = Callable[[Entry], bool]


def imported_entries(batch_ids: Iterable[str] | None = None) -> EntryPredicate:
    """Predicate for entries from a batch import, optionally limited to *batch_ids*."""
    wanted = set(batch_ids) if batch_ids is not None else None

    def _match(entry: Entry) -> bool:
        if not entry.batch_id:
            return False
        return wanted is None or entry.batch_id in wanted

    return _match


class BulkDeleteEngine:
    """Deletes every entry matching a predicate."""

    def __init__(
        self,
        store: DocumentStore,
        entries: EntryStore,
        archive: ArchiveRetention,
        config: PipelineConfig | None = None,
    ):
        self._store = store
        self._entries = entries
        self._archive = archive
        self.config = config or PipelineConfig()

    @property
    def chunk_size(self) -> int:
        return min(self.config.write_batch_limit, self._store.max_batch_writes)

    async def bulk_delete(self, predicate: EntryPredicate) -> int:
        """Archive and delete all entries matching *predicate*. Returns the count deleted."""
        collection = self._entries.paths.entries
        docs = await self._entries.list_documents()

        deleted = 0
        commits = 0
        chunk: WriteBatch = self._store.batch()

        for doc in docs:
            if not predicate(Entry.from_snapshot(doc)):
                continue
            await self._archive.archive(doc.id, doc.data or {})
            chunk.delete(collection, doc.id)
            if len(chunk) >= self.chunk_size:
                await chunk.commit()
                deleted += len(chunk)
                commits += 1
                chunk = self._store.batch()

        if len(chunk):
            await chunk.commit()
            deleted += len(chunk)
            commits += 1

        try:
            await self._archive.trim(batched=True)
        except Exception as e:
            logger.warning(f"Archive cleanup after bulk delete failed: {e}")

        logger.info(f"Bulk delete removed {deleted} entries in {commits} commit(s)")
        return deleted

    async def delete_imported(self, batch_ids: Iterable[str] | None = None) -> int:
        """Delete imported entries; all batches when *batch_ids* is None."""
        return await self.bulk_delete(imported_entries(batch_ids))
