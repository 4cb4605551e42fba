"""
Abstract document store.

A small async contract for per-user document collections: point CRUD,
ordered queries, merge-style upserts, optimistic transactions and
size-limited batched writes. Concrete backends implement the primitive
operations; transaction retry and batching live here.
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from loguru import logger

from ..exceptions import BatchLimitError, StoreError, TransactionConflictError

T = TypeVar("T")

DEFAULT_MAX_BATCH_WRITES = 500

WhereClause = tuple[str, str, Any]
"""``(field, op, value)`` with op one of ``== != < <= > >= in``."""


@dataclass
class DocumentSnapshot:
    """A point-in-time copy of one document."""

    id: str
    data: dict[str, Any] | None
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)


@dataclass
class WriteOp:
    """A staged write. ``kind`` is one of ``set``, ``update``, ``delete``."""

    kind: Literal["set", "update", "delete"]
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class Transaction:
    """Read-then-write unit of work handed to ``run_transaction`` callbacks.

    All reads must happen before the first staged write. Reads record the
    document version; the commit fails if any of them changed meanwhile.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._reads: dict[tuple[str, str], int] = {}
        self._ops: list[WriteOp] = []

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        if self._ops:
            raise StoreError("Transaction reads must happen before writes")
        snap = await self._store.get(collection, doc_id)
        self._reads[(collection, doc_id)] = snap.version
        return snap

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> None:
        self._ops.append(WriteOp("set", collection, doc_id, dict(data), merge))

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._ops.append(WriteOp("update", collection, doc_id, dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(WriteOp("delete", collection, doc_id))


class WriteBatch:
    """Atomic group of writes capped at the store's ``max_batch_writes``."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._ops: list[WriteOp] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def _stage(self, op: WriteOp) -> None:
        if self._committed:
            raise StoreError("WriteBatch already committed")
        if len(self._ops) >= self._store.max_batch_writes:
            raise BatchLimitError(f"A batch may hold at most {self._store.max_batch_writes} writes")
        self._ops.append(op)

    def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> WriteBatch:
        self._stage(WriteOp("set", collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> WriteBatch:
        self._stage(WriteOp("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._stage(WriteOp("delete", collection, doc_id))
        return self

    async def commit(self) -> None:
        if self._committed:
            raise StoreError("WriteBatch already committed")
        self._committed = True
        if self._ops:
            await self._store._commit(self._ops, {})


class DocumentStore(ABC):
    """Abstract base class for document store backends.

    Args:
        max_transaction_attempts: Attempts before ``TransactionConflictError``.
        transaction_backoff: Base seconds for jittered exponential backoff
            between conflicting attempts.
        max_batch_writes: Provider limit on operations per ``WriteBatch``.
    """

    def __init__(
        self,
        *,
        max_transaction_attempts: int = 5,
        transaction_backoff: float = 0.01,
        max_batch_writes: int = DEFAULT_MAX_BATCH_WRITES,
    ):
        self.max_transaction_attempts = max_transaction_attempts
        self.transaction_backoff = transaction_backoff
        self.max_batch_writes = max_batch_writes

    @abstractmethod
    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        """Create a document, generating an id when none is given. Returns the id."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read one document. Missing documents have ``exists == False``."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Create or replace a document; with ``merge`` only the given keys change."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Change fields of an existing document. Raises DocumentNotFoundError."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns True if it existed."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        where: Iterable[WhereClause] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """List documents, optionally filtered and ordered by one field.

        Documents missing the ``order_by`` field are excluded.
        """

    @abstractmethod
    async def _commit(self, ops: list[WriteOp], expected_versions: dict[tuple[str, str], int]) -> bool:
        """Apply *ops* atomically if every expected version still matches.

        Returns False (applying nothing) on a version mismatch.
        """

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        *,
        max_attempts: int | None = None,
    ) -> T:
        """Run *fn* in an optimistic transaction, retrying on conflicting writers.

        *fn* may run more than once, so it must not have side effects outside
        the transaction.
        """
        attempts = max_attempts or self.max_transaction_attempts
        for attempt in range(1, attempts + 1):
            tx = Transaction(self)
            result = await fn(tx)
            if await self._commit(tx._ops, tx._reads):
                return result
            logger.debug(f"Transaction conflict (attempt {attempt}/{attempts})")
            if attempt < attempts:
                await asyncio.sleep(random.uniform(0, self.transaction_backoff * 2 ** (attempt - 1)))
        raise TransactionConflictError(f"Transaction still conflicting after {attempts} attempts")

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
