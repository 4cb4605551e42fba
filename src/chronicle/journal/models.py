"""Data models for journal entries and their derived records.

The store holds plain dicts; these dataclasses convert to and from them.
Timestamps are ISO-8601 UTC strings with millisecond precision, so string
order equals chronological order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from ..core.storage import DocumentSnapshot


class Mood(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class UserCollections:
    """Collection paths for one user's partition of the store."""

    uid: str

    @property
    def entries(self) -> str:
        return f"users/{self.uid}/entries"

    @property
    def month_index(self) -> str:
        return f"users/{self.uid}/month_index"

    @property
    def batches(self) -> str:
        return f"users/{self.uid}/batches"

    @property
    def archive(self) -> str:
        return f"users/{self.uid}/archive"


def to_timestamp(dt: datetime) -> str:
    """Render *dt* as a UTC ISO-8601 string. Naive datetimes are local time."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def now_timestamp() -> str:
    return to_timestamp(datetime.now(timezone.utc))


def derive_keys(created_at: datetime) -> tuple[str, str]:
    """Return ``(day_key, month_key)`` for the local calendar date of *created_at*."""
    local = created_at.astimezone() if created_at.tzinfo else created_at
    day_key = local.strftime("%Y-%m-%d")
    return day_key, day_key[:7]


def needs_mood_analysis(data: dict[str, Any] | None) -> bool:
    """True when an entry has text but no current-format mood analysis.

    Analyses without a ``rationale`` come from an older, simpler scheme and
    are reprocessed as well.
    """
    if not data or not data.get("text"):
        return False
    analysis = data.get("mood_analysis")
    return not isinstance(analysis, dict) or not analysis.get("rationale")


@dataclass
class MoodAnalysis:
    """Structured mood rating attached to an entry by the classifier."""

    rating: int
    mood: str
    description: str
    emoji: str
    score: float
    rationale: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "rating": self.rating,
            "mood": self.mood,
            "description": self.description,
            "emoji": self.emoji,
            "score": self.score,
            "rationale": self.rationale,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MoodAnalysis:
        return cls(
            rating=int(data.get("rating", 50)),
            mood=str(data.get("mood", Mood.NEUTRAL)),
            description=str(data.get("description", "")),
            emoji=str(data.get("emoji", "")),
            score=data.get("score", 0),
            rationale=str(data.get("rationale", "") or ""),
        )


@dataclass
class Entry:
    """A dated journal entry.

    ``day_key``/``month_key`` are fixed at creation and never recomputed.
    """

    id: str
    text: str
    excerpt: str
    created_at: str
    day_key: str
    month_key: str
    mood: str | None = None
    mood_analysis: MoodAnalysis | None = None
    image_ref: str | None = None
    batch_id: str | None = None

    @property
    def created_datetime(self) -> datetime:
        return datetime.fromisoformat(self.created_at)

    @property
    def needs_mood_analysis(self) -> bool:
        return needs_mood_analysis(self.to_document())

    def to_document(self) -> dict[str, Any]:
        """Store representation (id excluded, unset optionals omitted)."""
        doc: dict[str, Any] = {
            "text": self.text,
            "excerpt": self.excerpt,
            "created_at": self.created_at,
            "day_key": self.day_key,
            "month_key": self.month_key,
        }
        if self.mood is not None:
            doc["mood"] = self.mood
        if self.mood_analysis is not None:
            doc["mood_analysis"] = self.mood_analysis.to_dict()
        if self.image_ref is not None:
            doc["image_ref"] = self.image_ref
        if self.batch_id is not None:
            doc["batch_id"] = self.batch_id
        return doc

    @classmethod
    def _fields_from(cls, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        created_at = str(data.get("created_at") or "")
        day_key = data.get("day_key") or created_at[:10]
        analysis = data.get("mood_analysis")
        return {
            "id": doc_id,
            "text": str(data.get("text", "")),
            "excerpt": str(data.get("excerpt", "")),
            "created_at": created_at,
            "day_key": day_key,
            "month_key": data.get("month_key") or day_key[:7],
            "mood": data.get("mood"),
            "mood_analysis": MoodAnalysis.from_dict(analysis) if isinstance(analysis, dict) else None,
            "image_ref": data.get("image_ref"),
            "batch_id": data.get("batch_id"),
        }

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> Entry:
        return cls(**cls._fields_from(snap.id, snap.data or {}))

    def __repr__(self) -> str:
        preview = self.excerpt[:40] + "..." if len(self.excerpt) > 40 else self.excerpt
        return f"Entry(id='{self.id}', day='{self.day_key}', excerpt='{preview}')"


@dataclass
class ArchivedEntry(Entry):
    """Copy of a deleted entry kept in the bounded archive."""

    original_id: str = ""
    deleted_at: str = ""

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> ArchivedEntry:
        data = snap.data or {}
        return cls(
            **cls._fields_from(snap.id, data),
            original_id=str(data.get("original_id", "")),
            deleted_at=str(data.get("deleted_at", "")),
        )


@dataclass
class MonthIndex:
    """Bounded per-month summary: entry count, sample excerpts, time range.

    ``count`` is an all-time counter; deletes never decrement it.
    """

    month_key: str
    count: int = 0
    samples: list[str] = field(default_factory=list)
    first_at: str | None = None
    last_at: str | None = None

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> MonthIndex:
        data = snap.data or {}
        samples = data.get("samples")
        return cls(
            month_key=str(data.get("month_key") or snap.id),
            count=int(data.get("count") or 0),
            samples=[s for s in samples if isinstance(s, str)] if isinstance(samples, list) else [],
            first_at=data.get("first_at") if isinstance(data.get("first_at"), str) else None,
            last_at=data.get("last_at") if isinstance(data.get("last_at"), str) else None,
        )


@dataclass
class Batch:
    """Registry record for one import operation."""

    batch_id: str
    entry_ids: list[str] = field(default_factory=list)
    entry_count: int = 0
    created_at: str = ""
    doc_id: str = ""

    @classmethod
    def from_snapshot(cls, snap: DocumentSnapshot) -> Batch:
        data = snap.data or {}
        return cls(
            batch_id=str(data.get("batch_id", "")),
            entry_ids=list(data.get("entry_ids") or []),
            entry_count=int(data.get("entry_count") or 0),
            created_at=str(data.get("created_at", "")),
            doc_id=snap.id,
        )


@dataclass(frozen=True)
class ImportRecord:
    """One parsed record of a batch import file."""

    date: str  # YYYY-MM-DD
    content: str
