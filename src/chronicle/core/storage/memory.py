"""
In-process document store.

Keeps every collection in dictionaries. Each public call yields to the
event loop first, so concurrent callers interleave the way they would
against a networked store. Commits contain no awaits and are therefore
atomic under asyncio.
"""

from __future__ import annotations

import asyncio
import copy
import operator
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..exceptions import DocumentNotFoundError, StoreError
from .base import DocumentSnapshot, DocumentStore, WhereClause, WriteOp

_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, choices: value in choices,
}


@dataclass
class _Record:
    data: dict[str, Any]
    version: int
    seq: int


def new_document_id() -> str:
    """Return a 20-character random document id."""
    return uuid.uuid4().hex[:20]


def _matches(data: dict[str, Any], where: Iterable[WhereClause]) -> bool:
    for field_name, op, value in where:
        if op not in _OPERATORS:
            raise StoreError(f"Unsupported query operator: {op}")
        if field_name not in data:
            return False
        try:
            if not _OPERATORS[op](data[field_name], value):
                return False
        except TypeError:
            return False
    return True


class MemoryDocumentStore(DocumentStore):
    """Dictionary-backed ``DocumentStore``. Suitable for tests and single processes."""

    def __init__(self, **config: Any):
        super().__init__(**config)
        self._collections: dict[str, dict[str, _Record]] = {}
        self._clock = 0  # shared source for versions and insertion order

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def _snapshot(self, collection: str, doc_id: str) -> DocumentSnapshot:
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None:
            return DocumentSnapshot(id=doc_id, data=None, version=0)
        return DocumentSnapshot(id=doc_id, data=copy.deepcopy(record.data), version=record.version)

    # -- Public API ----------------------------------------------------------

    async def insert(self, collection: str, data: dict[str, Any], doc_id: str | None = None) -> str:
        await asyncio.sleep(0)
        doc_id = doc_id or new_document_id()
        await self._commit([WriteOp("set", collection, doc_id, dict(data))], {})
        return doc_id

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        await asyncio.sleep(0)
        return self._snapshot(collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False) -> None:
        await asyncio.sleep(0)
        await self._commit([WriteOp("set", collection, doc_id, dict(data), merge)], {})

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        await self._commit([WriteOp("update", collection, doc_id, dict(fields))], {})

    async def delete(self, collection: str, doc_id: str) -> bool:
        await asyncio.sleep(0)
        existed = doc_id in self._collections.get(collection, {})
        await self._commit([WriteOp("delete", collection, doc_id)], {})
        return existed

    async def query(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        where: Iterable[WhereClause] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        clauses = list(where or [])
        records = [
            (doc_id, rec)
            for doc_id, rec in self._collections.get(collection, {}).items()
            if not clauses or _matches(rec.data, clauses)
        ]
        if order_by:
            records = [(doc_id, rec) for doc_id, rec in records if rec.data.get(order_by) is not None]
            # Ties fall back to insertion order, newest first when descending
            records.sort(key=lambda item: (item[1].data[order_by], item[1].seq), reverse=descending)
        else:
            records.sort(key=lambda item: item[1].seq)
        if limit is not None:
            records = records[:limit]
        return [DocumentSnapshot(id=doc_id, data=copy.deepcopy(rec.data), version=rec.version) for doc_id, rec in records]

    # -- Commit --------------------------------------------------------------

    async def _commit(self, ops: list[WriteOp], expected_versions: dict[tuple[str, str], int]) -> bool:
        for (collection, doc_id), version in expected_versions.items():
            record = self._collections.get(collection, {}).get(doc_id)
            current = record.version if record else 0
            if current != version:
                return False

        # Validate before mutating so a failing op leaves nothing applied
        pending_ids = {(op.collection, op.doc_id) for op in ops if op.kind == "set"}
        for op in ops:
            if op.kind == "update":
                exists = op.doc_id in self._collections.get(op.collection, {})
                if not exists and (op.collection, op.doc_id) not in pending_ids:
                    raise DocumentNotFoundError(f"No document {op.collection}/{op.doc_id}")

        touched: set[str] = set()
        for op in ops:
            docs = self._collections.setdefault(op.collection, {})
            record = docs.get(op.doc_id)
            if op.kind == "delete":
                docs.pop(op.doc_id, None)
            elif op.kind == "set" and (record is None or not op.merge):
                seq = record.seq if record else self._tick()
                docs[op.doc_id] = _Record(data=copy.deepcopy(op.data), version=self._tick(), seq=seq)
            else:
                record.data.update(copy.deepcopy(op.data))
                record.version = self._tick()
            touched.add(op.collection)

        await self._after_write(touched)
        return True

    async def _after_write(self, collections: set[str]) -> None:
        """Hook for persistent subclasses; runs after every applied commit."""

    # -- Introspection -------------------------------------------------------

    def collection_names(self) -> list[str]:
        return sorted(name for name, docs in self._collections.items() if docs)
