"""
Background mood classification queue.

A ``MoodQueue`` belongs to one user session. It finds entries whose text
has no current-format analysis, sends them to the classifier in fixed-size
batches, paces itself between batches and backs off on rate limiting.
Failed batches are not retried within a pass; their entries still match
the pending predicate and are picked up by the next pass.

The single-flight guard is per instance. Two processes running queues for
the same user are not coordinated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from loguru import logger

from ..core.exceptions import ClassifierRateLimitError
from ..core.storage import ChangeFeed, DocumentSnapshot, DocumentStore, PollingChangeFeed
from ..core.utils.async_helpers import with_timeout
from ..journal.models import needs_mood_analysis
from ..journal.store import EntryStore
from .classifier import Classifier, ClassifierRequest, MoodResult

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class QueueConfig:
    """Queue pacing.

    Attributes:
        batch_size: Entries per classifier call (the classifier accepts up to 25).
        rate_limit_delay: Seconds to wait after a successful batch when more remain.
        rate_limit_backoff: Seconds to wait after a rate-limited batch.
        classifier_timeout: Caller-enforced limit per classifier call (None = none).
    """

    batch_size: int = 15
    rate_limit_delay: float = 3.0
    rate_limit_backoff: float = 10.0
    classifier_timeout: float | None = 120

    @classmethod
    def from_config(cls, config: Any) -> QueueConfig:
        validated = config.validated()
        return cls(
            batch_size=validated.mood.batch_size,
            rate_limit_delay=validated.mood.rate_limit_delay,
            rate_limit_backoff=validated.mood.rate_limit_backoff,
            classifier_timeout=validated.classifier.timeout,
        )


@dataclass
class QueueStatus:
    pending: int = 0
    processing: bool = False
    processed: int = 0
    total: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_pending(doc: DocumentSnapshot) -> bool:
    return needs_mood_analysis(doc.data)


class MoodQueue:
    """Rate-limited, single-flight mood classification for one user.

    Usage::

        queue = MoodQueue(store, "u1", LLMClassifier(api_key=key))
        await queue.refresh()
        status = await queue.process_queue()
    """

    def __init__(
        self,
        store: DocumentStore,
        uid: str,
        classifier: Classifier,
        config: QueueConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        change_feed: ChangeFeed | None = None,
    ):
        self._entries = EntryStore(store, uid)
        self._classifier = classifier
        self.config = config or QueueConfig()
        self._sleep = sleep
        self._feed = change_feed or PollingChangeFeed(store)
        self.status = QueueStatus()
        self._processing = False
        self._abort = False
        self._task: asyncio.Task | None = None
        self._watch_task: asyncio.Task | None = None

    @property
    def is_processing(self) -> bool:
        return self._processing

    # -- Pending count -------------------------------------------------------

    def _set_pending(self, pending: int) -> None:
        self.status.pending = pending
        self.status.total = pending + self.status.processed

    async def refresh(self) -> QueueStatus:
        """Recount pending entries from the store."""
        docs = await self._entries.list_documents()
        self._set_pending(sum(1 for doc in docs if is_pending(doc)))
        return self.status

    async def watch(self) -> None:
        """Keep ``status.pending`` current from the change feed until cancelled."""
        async for docs in self._feed.subscribe(self._entries.paths.entries, is_pending):
            self._set_pending(len(docs))

    def start_watching(self) -> asyncio.Task:
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.create_task(self.watch())
        return self._watch_task

    async def stop_watching(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

    # -- Processing ----------------------------------------------------------

    def start(self) -> asyncio.Task | None:
        """Schedule a pass in the background. Returns None if one is already running."""
        if self._processing or (self._task is not None and not self._task.done()):
            return None
        self._task = asyncio.create_task(self.process_queue())
        return self._task

    def stop(self) -> None:
        """Stop after the in-flight batch; no further batches start.

        The request holds until a pass consumes it, so a stop issued before a
        scheduled pass begins ends that pass before its first batch.
        """
        self._abort = True

    async def _snapshot_pending(self) -> list[ClassifierRequest]:
        docs = await self._entries.list_documents()
        pending = []
        for doc in docs:
            if not is_pending(doc):
                continue
            data = doc.data or {}
            date = data.get("day_key") or str(data.get("created_at") or "")[:10]
            pending.append(ClassifierRequest(id=doc.id, text=str(data["text"]), date=date))
        return pending

    async def _write_results(self, results: list[MoodResult]) -> int:
        updated = 0
        for result in results:
            try:
                await self._entries.update_entry(
                    result.id,
                    {"mood": result.mood, "mood_analysis": result.to_analysis().to_dict()},
                )
                updated += 1
            except Exception as e:
                logger.error(f"Failed to update entry {result.id}: {e}")
        return updated

    async def process_queue(self) -> QueueStatus:
        """Run one pass over every currently pending entry.

        Returns the status after the pass. Returns immediately when a pass
        is already running or the classifier is not ready.
        """
        if self._processing:
            logger.debug("Mood queue already running; skipping")
            return self.status
        if not self._classifier.ready:
            logger.warning("Mood classifier not configured (no API key); skipping queue")
            return self.status

        self._processing = True
        self.status.processing = True
        try:
            pending = await self._snapshot_pending()
            self.status.total = len(pending)
            self.status.processed = 0
            self.status.errors = 0
            self.status.pending = len(pending)
            batch_size = self.config.batch_size
            logger.info(f"Mood queue: {len(pending)} pending entries")

            for start in range(0, len(pending), batch_size):
                if self._abort:
                    logger.info("Mood queue processing aborted")
                    break

                batch = pending[start : start + batch_size]
                more_remaining = start + batch_size < len(pending)
                try:
                    results = await with_timeout(
                        self._classifier.classify(batch),
                        self.config.classifier_timeout,
                    )
                except ClassifierRateLimitError:
                    self.status.errors += len(batch)
                    logger.warning(f"Rate limited; backing off {self.config.rate_limit_backoff}s")
                    await self._sleep(self.config.rate_limit_backoff)
                    continue
                except Exception as e:
                    self.status.errors += len(batch)
                    logger.error(f"Mood batch of {len(batch)} failed: {e}")
                    continue

                updated = await self._write_results(results)
                self.status.processed += updated
                self.status.errors += len(batch) - updated
                self.status.pending = max(0, self.status.pending - updated)

                if more_remaining:
                    await self._sleep(self.config.rate_limit_delay)
        except Exception as e:
            logger.error(f"Mood queue processing error: {e}")
        finally:
            self._processing = False
            self._abort = False
            self.status.processing = False

        logger.info(
            f"Mood queue pass done: processed={self.status.processed} "
            f"errors={self.status.errors} total={self.status.total}"
        )
        return self.status
