"""
Change feeds over document collections.

``ChangeFeed.subscribe`` yields the (optionally filtered) contents of a
collection each time they change. ``PollingChangeFeed`` works with any
``DocumentStore`` by re-querying on an interval; backends with native push
can provide their own implementation of the same protocol.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Protocol, runtime_checkable

from loguru import logger

from .base import DocumentSnapshot, DocumentStore

Predicate = Callable[[DocumentSnapshot], bool]


@runtime_checkable
class ChangeFeed(Protocol):
    """Protocol for collection change subscriptions."""

    def subscribe(
        self,
        collection: str,
        predicate: Predicate | None = None,
    ) -> AsyncIterator[list[DocumentSnapshot]]:
        """Yield the matching documents now, then again after every change."""
        ...


def _fingerprint(docs: list[DocumentSnapshot]) -> frozenset[tuple[str, int]]:
    return frozenset((doc.id, doc.version) for doc in docs)


class PollingChangeFeed:
    """Change feed that polls ``store.query`` every *interval* seconds.

    Example::

        feed = PollingChangeFeed(store, interval=2.0)
        async for docs in feed.subscribe("users/u1/entries", is_pending):
            status.pending = len(docs)
    """

    def __init__(self, store: DocumentStore, interval: float = 2.0):
        self._store = store
        self.interval = interval

    async def subscribe(
        self,
        collection: str,
        predicate: Predicate | None = None,
    ) -> AsyncIterator[list[DocumentSnapshot]]:
        last: frozenset[tuple[str, int]] | None = None
        while True:
            docs = await self._store.query(collection)
            if predicate is not None:
                docs = [doc for doc in docs if predicate(doc)]
            fingerprint = _fingerprint(docs)
            if fingerprint != last:
                last = fingerprint
                logger.trace(f"Change feed {collection}: {len(docs)} document(s)")
                yield docs
            await asyncio.sleep(self.interval)
