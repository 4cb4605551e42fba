"""Tests for core.storage: memory and JSON-file document stores."""

import asyncio
import json

import pytest

from chronicle.core.exceptions import (
    BatchLimitError,
    DocumentNotFoundError,
    StoreError,
    TransactionConflictError,
)
from chronicle.core.storage import LocalDocumentStore, MemoryDocumentStore, new_document_id

# ── MemoryDocumentStore ─────────────────────────────────────────────


class TestMemoryDocumentStore:
    @pytest.fixture
    def store(self):
        return MemoryDocumentStore()

    def test_new_document_id(self):
        ids = {new_document_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 20 for i in ids)

    @pytest.mark.asyncio
    async def test_insert_and_get(self, store):
        doc_id = await store.insert("notes", {"title": "hi"})
        snap = await store.get("notes", doc_id)
        assert snap.exists
        assert snap.id == doc_id
        assert snap.get("title") == "hi"
        assert snap.version > 0

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        snap = await store.get("notes", "nope")
        assert not snap.exists
        assert snap.version == 0
        assert snap.get("title", "default") == "default"

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self, store):
        doc_id = await store.insert("notes", {"tags": ["a"]})
        snap = await store.get("notes", doc_id)
        snap.data["tags"].append("b")
        assert (await store.get("notes", doc_id)).get("tags") == ["a"]

    @pytest.mark.asyncio
    async def test_set_replace_and_merge(self, store):
        await store.set("notes", "n1", {"a": 1, "b": 2})
        await store.set("notes", "n1", {"b": 3}, merge=True)
        assert (await store.get("notes", "n1")).data == {"a": 1, "b": 3}
        await store.set("notes", "n1", {"c": 4})
        assert (await store.get("notes", "n1")).data == {"c": 4}

    @pytest.mark.asyncio
    async def test_update(self, store):
        await store.set("notes", "n1", {"a": 1})
        await store.update("notes", "n1", {"b": 2})
        assert (await store.get("notes", "n1")).data == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.update("notes", "ghost", {"a": 1})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        doc_id = await store.insert("notes", {"a": 1})
        assert await store.delete("notes", doc_id) is True
        assert await store.delete("notes", doc_id) is False
        assert not (await store.get("notes", doc_id)).exists

    @pytest.mark.asyncio
    async def test_versions_increase_on_write(self, store):
        await store.set("notes", "n1", {"a": 1})
        v1 = (await store.get("notes", "n1")).version
        await store.update("notes", "n1", {"a": 2})
        assert (await store.get("notes", "n1")).version > v1

    @pytest.mark.asyncio
    async def test_query_order_and_limit(self, store):
        for i, ts in enumerate(["2025-01-02", "2025-01-03", "2025-01-01"]):
            await store.insert("notes", {"ts": ts, "n": i})
        asc = await store.query("notes", order_by="ts")
        assert [s.get("ts") for s in asc] == ["2025-01-01", "2025-01-02", "2025-01-03"]
        desc = await store.query("notes", order_by="ts", descending=True, limit=2)
        assert [s.get("ts") for s in desc] == ["2025-01-03", "2025-01-02"]

    @pytest.mark.asyncio
    async def test_query_excludes_docs_missing_order_field(self, store):
        await store.insert("notes", {"ts": "2025-01-01"})
        await store.insert("notes", {"other": True})
        assert len(await store.query("notes")) == 2
        assert len(await store.query("notes", order_by="ts")) == 1

    @pytest.mark.asyncio
    async def test_query_ties_newest_first_when_descending(self, store):
        first = await store.insert("notes", {"ts": "same"})
        second = await store.insert("notes", {"ts": "same"})
        desc = await store.query("notes", order_by="ts", descending=True)
        assert [s.id for s in desc] == [second, first]

    @pytest.mark.asyncio
    async def test_query_where(self, store):
        await store.insert("notes", {"kind": "a", "n": 1})
        await store.insert("notes", {"kind": "b", "n": 2})
        await store.insert("notes", {"n": 3})
        assert [s.get("n") for s in await store.query("notes", where=[("kind", "==", "a")])] == [1]
        assert [s.get("n") for s in await store.query("notes", where=[("n", ">=", 2)])] == [2, 3]
        assert [s.get("n") for s in await store.query("notes", where=[("kind", "in", ["a", "b"])])] == [1, 2]

    @pytest.mark.asyncio
    async def test_query_unknown_operator(self, store):
        await store.insert("notes", {"n": 1})
        with pytest.raises(StoreError, match="Unsupported"):
            await store.query("notes", where=[("n", "~", 1)])

    @pytest.mark.asyncio
    async def test_collection_names(self, store):
        await store.insert("users/u1/entries", {"a": 1})
        await store.insert("users/u1/archive", {"a": 1})
        assert store.collection_names() == ["users/u1/archive", "users/u1/entries"]


# ── Transactions ────────────────────────────────────────────────────


class TestTransactions:
    @pytest.mark.asyncio
    async def test_read_modify_write(self, store):
        await store.set("counters", "c", {"n": 1})

        async def bump(tx):
            snap = await tx.get("counters", "c")
            tx.set("counters", "c", {"n": snap.get("n") + 1})
            return snap.get("n") + 1

        assert await store.run_transaction(bump) == 2
        assert (await store.get("counters", "c")).get("n") == 2

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_not_lost(self, store):
        async def bump(tx):
            snap = await tx.get("counters", "c")
            tx.set("counters", "c", {"n": (snap.get("n") or 0) + 1}, merge=True)

        await asyncio.gather(*(store.run_transaction(bump) for _ in range(20)))
        assert (await store.get("counters", "c")).get("n") == 20

    @pytest.mark.asyncio
    async def test_retries_after_conflict(self, store):
        await store.set("counters", "c", {"n": 0})
        calls = 0

        async def bump(tx):
            nonlocal calls
            calls += 1
            snap = await tx.get("counters", "c")
            if calls == 1:
                await store.set("counters", "c", {"n": 100})
            tx.set("counters", "c", {"n": snap.get("n") + 1})

        await store.run_transaction(bump)
        assert calls == 2
        assert (await store.get("counters", "c")).get("n") == 101

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        store = MemoryDocumentStore(max_transaction_attempts=3, transaction_backoff=0)
        await store.set("counters", "c", {"n": 0})
        calls = 0

        async def always_conflicts(tx):
            nonlocal calls
            calls += 1
            await tx.get("counters", "c")
            await store.update("counters", "c", {"n": calls})
            tx.set("counters", "c", {"n": -1})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(always_conflicts)
        assert calls == 3

    @pytest.mark.asyncio
    async def test_reads_after_writes_rejected(self, store):
        async def bad(tx):
            tx.set("counters", "c", {"n": 1})
            await tx.get("counters", "c")

        with pytest.raises(StoreError, match="before writes"):
            await store.run_transaction(bad)

    @pytest.mark.asyncio
    async def test_missing_read_conflicts_with_concurrent_create(self, store):
        calls = 0

        async def create(tx):
            nonlocal calls
            calls += 1
            snap = await tx.get("counters", "fresh")
            if calls == 1:
                await store.set("counters", "fresh", {"n": 5})
            tx.set("counters", "fresh", {"n": (snap.get("n") or 0) + 1})

        await store.run_transaction(create)
        assert (await store.get("counters", "fresh")).get("n") == 6


# ── WriteBatch ──────────────────────────────────────────────────────


class TestWriteBatch:
    @pytest.mark.asyncio
    async def test_commit_applies_all(self, store):
        await store.set("notes", "a", {"n": 1})
        batch = store.batch()
        batch.set("notes", "b", {"n": 2}).update("notes", "a", {"n": 10}).delete("notes", "missing")
        assert len(batch) == 3
        await batch.commit()
        assert (await store.get("notes", "a")).get("n") == 10
        assert (await store.get("notes", "b")).get("n") == 2

    @pytest.mark.asyncio
    async def test_failed_batch_applies_nothing(self, store):
        batch = store.batch()
        batch.set("notes", "b", {"n": 2})
        batch.update("notes", "ghost", {"n": 1})
        with pytest.raises(DocumentNotFoundError):
            await batch.commit()
        assert not (await store.get("notes", "b")).exists

    def test_limit_enforced(self):
        store = MemoryDocumentStore(max_batch_writes=3)
        batch = store.batch()
        for i in range(3):
            batch.delete("notes", str(i))
        with pytest.raises(BatchLimitError):
            batch.delete("notes", "3")

    @pytest.mark.asyncio
    async def test_commit_twice_rejected(self, store):
        batch = store.batch()
        batch.set("notes", "a", {})
        await batch.commit()
        with pytest.raises(StoreError, match="already committed"):
            await batch.commit()


# ── LocalDocumentStore ──────────────────────────────────────────────


class TestLocalDocumentStore:
    @pytest.mark.asyncio
    async def test_persists_across_reopen(self, tmp_path):
        base = tmp_path / "store"
        store = await LocalDocumentStore.open(str(base))
        doc_id = await store.insert("users/u1/entries", {"text": "hello"})
        await store.set("users/u1/month_index", "2025-01", {"count": 1})
        await store.close()

        assert (base / "users" / "u1" / "entries.json").exists()

        reopened = await LocalDocumentStore.open(str(base))
        assert (await reopened.get("users/u1/entries", doc_id)).get("text") == "hello"
        assert (await reopened.get("users/u1/month_index", "2025-01")).get("count") == 1

    @pytest.mark.asyncio
    async def test_delete_persisted(self, tmp_path):
        store = await LocalDocumentStore.open(str(tmp_path))
        doc_id = await store.insert("notes", {"a": 1})
        await store.delete("notes", doc_id)

        payload = json.loads((tmp_path / "notes.json").read_text())
        assert payload == []

    @pytest.mark.asyncio
    async def test_file_keeps_insertion_order(self, tmp_path):
        store = await LocalDocumentStore.open(str(tmp_path))
        ids = [await store.insert("notes", {"n": i}) for i in range(3)]
        await store.update("notes", ids[0], {"n": 99})

        payload = json.loads((tmp_path / "notes.json").read_text())
        assert [item["id"] for item in payload] == ids

    @pytest.mark.asyncio
    async def test_rejects_traversal(self, tmp_path):
        store = LocalDocumentStore(str(tmp_path))
        with pytest.raises(StoreError, match="Unsafe"):
            await store.insert("../outside", {"a": 1})

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / "notes.json").write_text("{not json")
        with pytest.raises(StoreError, match="Corrupt"):
            await LocalDocumentStore.open(str(tmp_path))
