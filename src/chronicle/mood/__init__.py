"""Mood classification: external classifier adapter and the background queue."""

from .classifier import (
    MAX_ENTRIES_PER_REQUEST,
    Classifier,
    ClassifierRequest,
    LLMClassifier,
    MoodResult,
    normalize_result,
    parse_results,
)
from .queue import MoodQueue, QueueConfig, QueueStatus
from .scheduler import MoodQueueScheduler

__all__ = [
    "MAX_ENTRIES_PER_REQUEST",
    "Classifier",
    "ClassifierRequest",
    "LLMClassifier",
    "MoodQueue",
    "MoodQueueScheduler",
    "MoodResult",
    "QueueConfig",
    "QueueStatus",
    "normalize_result",
    "parse_results",
]
