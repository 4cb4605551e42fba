"""Pydantic models for config validation.

Call ``Config.validated()`` to obtain a typed ``ChronicleConfig``.
Dict-based ``Config.get`` access keeps working unchanged; env var
overrides arrive as strings and are coerced here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .storage.base import DEFAULT_MAX_BATCH_WRITES


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class StoreConfig(BaseModel):
    """Document store location and transaction tuning."""

    path: Path | None = None
    max_transaction_attempts: int = Field(default=5, ge=1)

    @field_validator("path", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str) and v:
            return Path(v).expanduser()
        return v or None


class JournalConfig(BaseModel):
    """Bounds for month samples, archive retention and batched writes."""

    sample_size: int = Field(default=10, ge=1)
    sampling: Literal["hash-slot", "reservoir"] = "hash-slot"
    archive_limit: int = Field(default=30, ge=0)
    write_batch_limit: int = Field(default=500, ge=1, le=DEFAULT_MAX_BATCH_WRITES)
    excerpt_length: int = Field(default=220, ge=2)


class MoodConfig(BaseModel):
    """Background classification queue pacing."""

    batch_size: int = Field(default=15, ge=1, le=25)
    rate_limit_delay: float = Field(default=3.0, ge=0)
    rate_limit_backoff: float = Field(default=10.0, ge=0)
    interval_minutes: float = Field(default=15, gt=0)


class ClassifierConfig(BaseModel):
    """External mood classifier (LiteLLM model string + credentials)."""

    model: str = "gemini/gemini-2.5-flash"
    api_key: str = ""
    timeout: float = 120
    temperature: float = 0.3


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: str = ""


class ChronicleConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so deployments can add their own sections.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.chronicle"))
    store: StoreConfig = StoreConfig()
    user: str = "local"
    journal: JournalConfig = JournalConfig()
    mood: MoodConfig = MoodConfig()
    classifier: ClassifierConfig = ClassifierConfig()
    logging: LoggingConfig = LoggingConfig()
