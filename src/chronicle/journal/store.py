"""EntryStore: CRUD and ordered listing over one user's entries.

Creating an entry also updates its month index in the same call. The
index is best effort: its failures are logged and never fail the write.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from loguru import logger

from ..core.exceptions import EntryValidationError
from ..core.storage import DocumentSnapshot, DocumentStore
from ..core.utils.text import make_excerpt
from .config import PipelineConfig
from .models import Entry, UserCollections, derive_keys, to_timestamp
from .month_index import MonthIndexAggregator

# Fixed at creation time
_IMMUTABLE_FIELDS = frozenset({"created_at", "day_key", "month_key"})


class EntryStore:
    """Per-user entry collection.

    Example::

        entries = EntryStore(store, uid="u1")
        entry_id = await entries.add_entry("Walked to the harbour.")
        newest_first = await entries.list_entries()
    """

    def __init__(
        self,
        store: DocumentStore,
        uid: str,
        *,
        config: PipelineConfig | None = None,
        aggregator: MonthIndexAggregator | None = None,
    ):
        self._store = store
        self.uid = uid
        self.paths = UserCollections(uid)
        self.config = config or PipelineConfig()
        self.aggregator = aggregator or MonthIndexAggregator(store, uid, self.config)

    async def add_entry(
        self,
        text: str,
        *,
        created_at: datetime | None = None,
        batch_id: str | None = None,
        image_ref: str | None = None,
    ) -> str:
        """Create an entry and count it into its month index.

        Args:
            text: Entry body. Must contain non-whitespace characters.
            created_at: Creation time; naive values are local time. Defaults to now.
            batch_id: Import batch the entry belongs to.
            image_ref: Reference to an attached image.

        Returns:
            The new entry id.

        Raises:
            EntryValidationError: If *text* is empty.
        """
        if not isinstance(text, str) or not text.strip():
            raise EntryValidationError("Entry text cannot be empty")

        created = created_at or datetime.now(timezone.utc)
        day_key, month_key = derive_keys(created)
        timestamp = to_timestamp(created)
        excerpt = make_excerpt(text, self.config.excerpt_length)

        doc: dict[str, Any] = {
            "text": text,
            "excerpt": excerpt,
            "created_at": timestamp,
            "day_key": day_key,
            "month_key": month_key,
        }
        if image_ref is not None:
            doc["image_ref"] = image_ref
        if batch_id is not None:
            doc["batch_id"] = batch_id

        entry_id = await self._store.insert(self.paths.entries, doc)

        try:
            await self.aggregator.record_entry(entry_id, month_key, excerpt, timestamp)
        except Exception as e:
            logger.warning(f"Month index update failed for entry {entry_id} ({month_key}): {e}")

        return entry_id

    async def get_entry(self, entry_id: str) -> Entry | None:
        snap = await self._store.get(self.paths.entries, entry_id)
        return Entry.from_snapshot(snap) if snap.exists else None

    async def get_document(self, entry_id: str) -> DocumentSnapshot:
        return await self._store.get(self.paths.entries, entry_id)

    async def list_entries(self) -> list[Entry]:
        """All entries, newest ``created_at`` first."""
        snaps = await self._store.query(self.paths.entries, order_by="created_at", descending=True)
        return [Entry.from_snapshot(s) for s in snaps]

    async def list_documents(self) -> list[DocumentSnapshot]:
        """Raw entry documents in storage order (no server-side filtering)."""
        return await self._store.query(self.paths.entries)

    async def update_entry(self, entry_id: str, fields: dict[str, Any]) -> None:
        """Merge *fields* into an existing entry.

        Raises:
            EntryValidationError: If a creation-time key would change.
            DocumentNotFoundError: If the entry doesn't exist.
        """
        frozen = _IMMUTABLE_FIELDS.intersection(fields)
        if frozen:
            raise EntryValidationError(f"Fields fixed at creation cannot change: {', '.join(sorted(frozen))}")
        await self._store.update(self.paths.entries, entry_id, fields)

    async def delete_entry(self, entry_id: str) -> bool:
        """Point delete without archiving. Use JournalService.delete_entry to archive."""
        return await self._store.delete(self.paths.entries, entry_id)
