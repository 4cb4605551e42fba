"""Bulk text import.

File format::

    2025-01-01 : First entry
    content may span lines : and contain colons
    ~`~
    2025-01-02 : Another entry

Records failing the date check or lacking the ``" : "`` delimiter are
dropped silently. Importing the same text twice creates duplicate entries.
"""

from __future__ import annotations

import re
import time as _time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time

from loguru import logger

from ..core.exceptions import EmptyImportError, ImportFormatError
from .batches import BatchRegistry
from .models import ImportRecord
from .store import EntryStore

RECORD_SEPARATOR_RE = re.compile(r"\r?\n~`~\r?\n")
DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
DELIMITER = " : "

ProgressCallback = Callable[[int, int], None]


def parse_batch_import(text: str) -> list[ImportRecord]:
    """Parse import text into ordered ``ImportRecord`` values.

    Pure function: identical input always yields an equal list.
    """
    records: list[ImportRecord] = []
    for chunk in RECORD_SEPARATOR_RE.split(text):
        trimmed = chunk.strip()
        if not trimmed:
            continue
        idx = trimmed.find(DELIMITER)
        if idx == -1:
            continue
        day = trimmed[:idx].strip()
        content = trimmed[idx + len(DELIMITER) :].strip()
        if not DATE_RE.fullmatch(day):
            continue
        records.append(ImportRecord(date=day, content=content))
    return records


def local_noon(day: str) -> datetime:
    """Noon local time on *day*, so timezone offsets can't shift the date."""
    try:
        return datetime.combine(date.fromisoformat(day), time(12, 0))
    except ValueError as e:
        raise ImportFormatError(f"Invalid calendar date: {day}") from e


def new_batch_id() -> str:
    return f"batch_{int(_time.time() * 1000)}"


@dataclass
class ImportResult:
    batch_id: str
    entry_ids: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entry_ids)


class BatchImporter:
    """Writes parsed records as entries sharing one batch id, then registers the batch.

    There is no rollback: if the loop fails, the entries written so far
    stay (tagged with the batch id) and no batch record is registered.
    """

    def __init__(self, entries: EntryStore, registry: BatchRegistry):
        self._entries = entries
        self._registry = registry

    async def import_text(self, text: str, on_progress: ProgressCallback | None = None) -> ImportResult:
        """Parse and import *text*.

        Raises:
            EmptyImportError: If no valid record was found.
        """
        records = parse_batch_import(text)
        if not records:
            raise EmptyImportError("No valid entries found in file. Check format.")
        return await self.import_entries(records, on_progress)

    async def import_entries(
        self,
        records: Iterable[ImportRecord],
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        records = list(records)
        # Resolve every date up front so a bad calendar date fails before any write
        timestamps = [local_noon(record.date) for record in records]

        result = ImportResult(batch_id=new_batch_id())
        total = len(records)
        logger.info(f"Importing {total} entries as {result.batch_id}")

        for i, (record, created_at) in enumerate(zip(records, timestamps, strict=True), start=1):
            entry_id = await self._entries.add_entry(
                record.content,
                created_at=created_at,
                batch_id=result.batch_id,
            )
            result.entry_ids.append(entry_id)
            if on_progress:
                on_progress(i, total)

        try:
            await self._registry.register(result.batch_id, result.entry_ids)
        except Exception as e:
            logger.error(f"Failed to register batch {result.batch_id}: {e}")

        return result
