"""Batch registry and undo.

Each import registers one batch record. Undo removes every entry tagged
with the batch id, one delete at a time, then the record itself. Undo is
not atomic: an error part-way leaves the remaining entries in place.
"""

from __future__ import annotations

from collections import Counter

from loguru import logger

from ..core.storage import DocumentStore
from .models import Batch, now_timestamp
from .store import EntryStore


class BatchRegistry:
    """Tracks import batches in ``users/<uid>/batches``."""

    def __init__(self, store: DocumentStore, entries: EntryStore):
        self._store = store
        self._entries = entries
        self.paths = entries.paths

    async def register(self, batch_id: str, entry_ids: list[str]) -> str:
        """Persist a batch record. Returns its document id."""
        return await self._store.insert(
            self.paths.batches,
            {
                "batch_id": batch_id,
                "entry_ids": list(entry_ids),
                "entry_count": len(entry_ids),
                "created_at": now_timestamp(),
            },
        )

    async def list_batches(self) -> list[Batch]:
        """Registered batches, newest first."""
        snaps = await self._store.query(self.paths.batches, order_by="created_at", descending=True)
        return [Batch.from_snapshot(s) for s in snaps]

    async def get_batch(self, batch_id: str) -> Batch | None:
        snaps = await self._store.query(self.paths.batches, where=[("batch_id", "==", batch_id)], limit=1)
        return Batch.from_snapshot(snaps[0]) if snaps else None

    async def entry_counts(self) -> dict[str, int]:
        """Current number of entries per batch id, grouped client-side."""
        docs = await self._entries.list_documents()
        return dict(Counter(doc.data["batch_id"] for doc in docs if doc.data and doc.data.get("batch_id")))

    async def delete_batch(self, batch_id: str) -> int:
        """Delete every entry of *batch_id* and its batch record. Returns entries deleted."""
        docs = await self._entries.list_documents()
        targets = [doc.id for doc in docs if doc.get("batch_id") == batch_id]

        deleted = 0
        for entry_id in targets:
            await self._entries.delete_entry(entry_id)
            deleted += 1

        records = await self._store.query(self.paths.batches, where=[("batch_id", "==", batch_id)])
        for record in records:
            await self._store.delete(self.paths.batches, record.id)

        logger.info(f"Undid batch {batch_id}: {deleted} entries removed")
        return deleted
