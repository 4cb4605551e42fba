"""Configuration dataclasses for the journal pipeline.

Pure data containers with the production defaults. Build them from a
``Config`` with ``from_config`` or pass overrides to the constructor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

SamplingPolicy = Literal["hash-slot", "reservoir"]


@dataclass
class PipelineConfig:
    """Bounds for month indexing, archive retention and batched writes.

    Attributes:
        sample_size: Maximum excerpts kept per month index.
        sampling: ``"hash-slot"`` overwrites ``samples[hash(id) % n]`` once
            full; ``"reservoir"`` uses Algorithm R instead.
        archive_limit: Deleted entries retained in the archive.
        write_batch_limit: Provider cap on operations per batched write.
        excerpt_length: Characters kept in an entry excerpt.
    """

    sample_size: int = 10
    sampling: SamplingPolicy = "hash-slot"
    archive_limit: int = 30
    write_batch_limit: int = 500
    excerpt_length: int = 220

    @classmethod
    def from_config(cls, config: Any) -> PipelineConfig:
        section = config.validated().journal
        return cls(
            sample_size=section.sample_size,
            sampling=section.sampling,
            archive_limit=section.archive_limit,
            write_batch_limit=section.write_batch_limit,
            excerpt_length=section.excerpt_length,
        )
