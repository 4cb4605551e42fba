"""
Document storage for chronicle.

Provides the async ``DocumentStore`` contract (CRUD, ordered queries,
optimistic transactions, size-limited batched writes), an in-memory
backend, a JSON-file backend and polling change feeds.
"""

from .base import (
    DEFAULT_MAX_BATCH_WRITES,
    DocumentSnapshot,
    DocumentStore,
    Transaction,
    WriteBatch,
    WriteOp,
)
from .changes import ChangeFeed, PollingChangeFeed
from .local import LocalDocumentStore
from .memory import MemoryDocumentStore, new_document_id

__all__ = [
    "DEFAULT_MAX_BATCH_WRITES",
    "ChangeFeed",
    "DocumentSnapshot",
    "DocumentStore",
    "LocalDocumentStore",
    "MemoryDocumentStore",
    "PollingChangeFeed",
    "Transaction",
    "WriteBatch",
    "WriteOp",
    "new_document_id",
]
