"""Bounded archive of deleted entries.

Deleted entries are copied to ``users/<uid>/archive`` first; afterwards
the archive is trimmed back to the newest ``archive_limit`` records by
``deleted_at``. The trim is not transactional with concurrent deletes, so
the archive can briefly exceed the limit until the next trim.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from ..core.storage import DocumentStore
from .config import PipelineConfig
from .models import ArchivedEntry, UserCollections, now_timestamp


class ArchiveRetention:
    """Copy-on-delete archive capped at ``config.archive_limit`` records."""

    def __init__(self, store: DocumentStore, uid: str, config: PipelineConfig | None = None):
        self._store = store
        self.paths = UserCollections(uid)
        self.config = config or PipelineConfig()

    async def archive(self, entry_id: str, data: dict[str, Any]) -> str | None:
        """Copy an entry's fields into the archive.

        Best effort: returns the archive document id, or None if the write
        failed (the failure is logged, never raised).
        """
        record = {**data, "original_id": entry_id, "deleted_at": now_timestamp()}
        try:
            return await self._store.insert(self.paths.archive, record)
        except Exception as e:
            logger.warning(f"Failed to archive entry {entry_id}: {e}")
            return None

    async def trim(self, *, batched: bool = False) -> int:
        """Evict every archived record beyond the newest ``archive_limit``.

        Args:
            batched: Delete through chunked batched writes instead of one
                point delete per record.

        Returns:
            Number of records evicted.
        """
        snaps = await self._store.query(self.paths.archive, order_by="deleted_at", descending=True)
        overflow = snaps[self.config.archive_limit :]
        if not overflow:
            return 0

        if batched:
            chunk_size = min(self.config.write_batch_limit, self._store.max_batch_writes)
            for start in range(0, len(overflow), chunk_size):
                batch = self._store.batch()
                for snap in overflow[start : start + chunk_size]:
                    batch.delete(self.paths.archive, snap.id)
                await batch.commit()
        else:
            for snap in overflow:
                await self._store.delete(self.paths.archive, snap.id)

        logger.debug(f"Archive trimmed: {len(overflow)} record(s) evicted")
        return len(overflow)

    async def list_archived(self) -> list[ArchivedEntry]:
        """Archived entries, most recently deleted first."""
        snaps = await self._store.query(self.paths.archive, order_by="deleted_at", descending=True)
        return [ArchivedEntry.from_snapshot(s) for s in snaps]
