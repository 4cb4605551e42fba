"""
Local filesystem document store.

Same semantics as ``MemoryDocumentStore``; each collection is mirrored to
one JSON file under ``base_path`` after every committed write and loaded
back on ``open()``.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from loguru import logger

from ..exceptions import StoreError
from .memory import MemoryDocumentStore, _Record

_FILE_SUFFIX = ".json"


class LocalDocumentStore(MemoryDocumentStore):
    """JSON-file-backed document store.

    Usage::

        store = await LocalDocumentStore.open("~/.chronicle/store")
    """

    def __init__(self, base_path: str = "~/.chronicle/store", **config: Any):
        super().__init__(**config)
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._flush_lock = asyncio.Lock()

    @classmethod
    async def open(cls, base_path: str = "~/.chronicle/store", **config: Any) -> LocalDocumentStore:
        store = cls(base_path, **config)
        await store.load()
        return store

    def _collection_path(self, collection: str) -> Path:
        """Map ``users/<uid>/entries`` to ``base_path/users/<uid>/entries.json``.

        Rejects traversal so files never land outside ``base_path``.
        """
        parts = [p for p in collection.split("/") if p]
        if not parts or any(p in (".", "..") or "\\" in p or "\x00" in p for p in parts):
            raise StoreError(f"Unsafe collection name: {collection!r}")
        path = (self.base_path.joinpath(*parts)).with_suffix(_FILE_SUFFIX)
        try:
            path.resolve().relative_to(self.base_path)
        except ValueError as e:
            raise StoreError(f"Unsafe collection name: {collection!r}") from e
        return path

    async def load(self) -> None:
        """Read every persisted collection into memory."""
        for root, _dirs, files in os.walk(self.base_path):
            for name in files:
                if not name.endswith(_FILE_SUFFIX):
                    continue
                path = Path(root) / name
                collection = str(path.relative_to(self.base_path).with_suffix("")).replace(os.sep, "/")
                async with aiofiles.open(path, encoding="utf-8") as f:
                    raw = await f.read()
                try:
                    payload = json.loads(raw) if raw.strip() else []
                except json.JSONDecodeError as e:
                    raise StoreError(f"Corrupt collection file {path}: {e}") from e
                docs = self._collections.setdefault(collection, {})
                for item in payload:
                    docs[item["id"]] = _Record(data=item["data"], version=self._tick(), seq=self._tick())
        logger.debug(f"Loaded {len(self._collections)} collection(s) from {self.base_path}")

    async def _after_write(self, collections: set[str]) -> None:
        async with self._flush_lock:
            for collection in sorted(collections):
                await self._flush(collection)

    async def _flush(self, collection: str) -> None:
        path = self._collection_path(collection)
        docs = self._collections.get(collection, {})
        ordered = sorted(docs.items(), key=lambda item: item[1].seq)
        payload = json.dumps(
            [{"id": doc_id, "data": rec.data} for doc_id, rec in ordered],
            ensure_ascii=False,
            indent=1,
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(_FILE_SUFFIX + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(payload)
        await aiofiles.os.replace(tmp_path, path)
