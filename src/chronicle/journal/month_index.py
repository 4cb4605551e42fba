"""Per-month index maintenance.

Every entry creation bumps a bounded summary record for its month inside
an optimistic transaction, so concurrent creations in the same month
never lose an increment or a sample slot.
"""

from __future__ import annotations

import random

from loguru import logger

from ..core.storage import DocumentStore, Transaction
from ..core.utils.text import string_hash
from .config import PipelineConfig
from .models import MonthIndex, UserCollections, now_timestamp


def next_samples(
    samples: list[str],
    excerpt: str,
    entry_id: str,
    *,
    count: int,
    sample_size: int = 10,
    sampling: str = "hash-slot",
    rng: random.Random | None = None,
) -> list[str]:
    """Return the sample list after adding the *count*-th excerpt of a month.

    Until ``sample_size`` excerpts are held, the new one is appended. After
    that, ``hash-slot`` overwrites ``samples[string_hash(entry_id) % len]``;
    some slots can be unreachable for a given run of ids, so this is not a
    uniform sample. ``reservoir`` applies Algorithm R (keep with
    probability ``sample_size / count``).
    """
    updated = list(samples)
    if len(updated) < sample_size:
        updated.append(excerpt)
    elif sampling == "reservoir":
        slot = (rng or random).randrange(count)
        if slot < sample_size:
            updated[slot] = excerpt
    elif updated:
        updated[string_hash(entry_id) % len(updated)] = excerpt
    return updated[:sample_size]


class MonthIndexAggregator:
    """Maintains ``users/<uid>/month_index/<YYYY-MM>`` records."""

    def __init__(
        self,
        store: DocumentStore,
        uid: str,
        config: PipelineConfig | None = None,
        rng: random.Random | None = None,
    ):
        self._store = store
        self.paths = UserCollections(uid)
        self.config = config or PipelineConfig()
        self._rng = rng or random.Random()

    async def record_entry(self, entry_id: str, month_key: str, excerpt: str, timestamp: str) -> MonthIndex:
        """Count one new entry into its month. Returns the written index.

        Raises whatever the transaction raises; callers treat the index as
        best effort.
        """
        collection = self.paths.month_index

        async def _apply(tx: Transaction) -> MonthIndex:
            snap = await tx.get(collection, month_key)
            current = MonthIndex.from_snapshot(snap) if snap.exists else MonthIndex(month_key=month_key)
            count = current.count + 1
            samples = next_samples(
                current.samples,
                excerpt,
                entry_id,
                count=count,
                sample_size=self.config.sample_size,
                sampling=self.config.sampling,
                rng=self._rng,
            )
            prev_first = current.first_at or timestamp
            prev_last = current.last_at or timestamp
            index = MonthIndex(
                month_key=month_key,
                count=count,
                samples=samples,
                first_at=min(prev_first, timestamp),
                last_at=max(prev_last, timestamp),
            )
            tx.set(
                collection,
                month_key,
                {
                    "month_key": month_key,
                    "count": index.count,
                    "samples": index.samples,
                    "first_at": index.first_at,
                    "last_at": index.last_at,
                    "updated_at": now_timestamp(),
                },
                merge=True,
            )
            return index

        index = await self._store.run_transaction(_apply)
        logger.debug(f"Month {month_key}: count={index.count} samples={len(index.samples)}")
        return index

    async def get_month(self, month_key: str) -> MonthIndex | None:
        snap = await self._store.get(self.paths.month_index, month_key)
        return MonthIndex.from_snapshot(snap) if snap.exists else None

    async def list_months(self) -> list[MonthIndex]:
        """All month indexes, newest month first."""
        snaps = await self._store.query(self.paths.month_index, order_by="month_key", descending=True)
        return [MonthIndex.from_snapshot(s) for s in snaps]
