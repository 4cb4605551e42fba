"""Journal ingestion pipeline.

Entry storage with transactional month indexing, batch import and undo,
archive-bounded deletion and chunked bulk deletes, plus the models and
configuration dataclasses they share.
"""

from .archive import ArchiveRetention
from .batches import BatchRegistry
from .bulk_delete import BulkDeleteEngine, imported_entries
from .config import PipelineConfig
from .importer import BatchImporter, ImportResult, parse_batch_import
from .models import ArchivedEntry, Batch, Entry, ImportRecord, Mood, MoodAnalysis, MonthIndex, UserCollections
from .month_index import MonthIndexAggregator, next_samples
from .service import JournalService
from .store import EntryStore

__all__ = [
    "ArchiveRetention",
    "ArchivedEntry",
    "Batch",
    "BatchImporter",
    "BatchRegistry",
    "BulkDeleteEngine",
    "Entry",
    "EntryStore",
    "ImportRecord",
    "ImportResult",
    "JournalService",
    "MonthIndex",
    "MonthIndexAggregator",
    "Mood",
    "MoodAnalysis",
    "PipelineConfig",
    "UserCollections",
    "imported_entries",
    "next_samples",
    "parse_batch_import",
]
