"""
Mood classifier: batch sentiment rating through an external LLM.

``LLMClassifier`` sends up to 25 entries per call via LiteLLM and maps the
returned JSON array back onto the request ids by position. Errors are
normalised into the ClassifierError family so the queue can tell rate
limiting apart from everything else.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from ..core.exceptions import ClassifierError, ClassifierKeyError, ClassifierRateLimitError
from ..journal.models import Mood, MoodAnalysis

MAX_ENTRIES_PER_REQUEST = 25

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\[[\s\S]*?\])\s*```")
_BARE_JSON_RE = re.compile(r"(\[[\s\S]*\])")
_RATE_LIMIT_HINTS = ("rate limit", "ratelimit", "quota", "resource_exhausted")

SYSTEM_PROMPT = (
    "You rate the mood of journal entries. For each entry return an object with "
    '"rating" (1-100), "mood" ("positive", "negative" or "neutral"), "description", '
    '"emoji", "rationale" (2-3 sentences) and "score" (-15 to 15). '
    "Reply with a JSON array only, one object per entry, in the given order."
)


@dataclass(frozen=True)
class ClassifierRequest:
    """One entry to classify."""

    id: str
    text: str
    date: str


@dataclass
class MoodResult:
    """Classification for one request entry."""

    id: str
    rating: int
    mood: str
    description: str
    emoji: str
    rationale: str
    score: float

    def to_analysis(self) -> MoodAnalysis:
        return MoodAnalysis(
            rating=self.rating,
            mood=self.mood,
            description=self.description,
            emoji=self.emoji,
            score=self.score,
            rationale=self.rationale,
        )


@runtime_checkable
class Classifier(Protocol):
    """Contract for batch mood classifiers."""

    @property
    def ready(self) -> bool:
        """False when a precondition (e.g. API key) is missing; nothing will be sent."""
        ...

    async def classify(self, entries: list[ClassifierRequest]) -> list[MoodResult]:
        """Classify *entries*, returning results in request order.

        Raises:
            ClassifierRateLimitError: The service asked the caller to back off.
            ClassifierError: Any other batch-level failure.
        """
        ...


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _as_number(value: Any, default: float) -> float:
    """Numeric *value*, or *default* when it is missing, zero, non-numeric or not finite."""
    if isinstance(value, bool):
        return default
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return default
    if not value or (isinstance(value, float) and not math.isfinite(value)):
        return default
    return value


def normalize_result(raw: Any, entry_id: str) -> MoodResult:
    """Clamp and default one raw classifier object."""
    data = raw if isinstance(raw, dict) else {}
    mood = str(data.get("mood") or Mood.NEUTRAL).lower()
    if mood not in {m.value for m in Mood}:
        mood = Mood.NEUTRAL.value
    score = _clamp(_as_number(data.get("score"), 0), -15, 15)
    return MoodResult(
        id=entry_id,
        rating=int(_clamp(round(_as_number(data.get("rating"), 50)), 1, 100)),
        mood=mood,
        description=str(data.get("description") or "neutral"),
        emoji=str(data.get("emoji") or "😐"),
        rationale=str(data.get("rationale") or "No analysis available"),
        score=int(score) if float(score).is_integer() else score,
    )


def parse_results(text: str, entries: list[ClassifierRequest]) -> list[MoodResult]:
    """Extract the JSON array from a model reply and map it onto *entries*.

    Raises:
        ClassifierError: If no JSON array is found or its length is wrong.
    """
    text = (text or "").strip()
    if not text:
        raise ClassifierError("Empty classifier response")
    match = _FENCED_JSON_RE.search(text) or _BARE_JSON_RE.search(text)
    payload = match.group(1) if match else text
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ClassifierError(f"Classifier response is not valid JSON: {text[:200]}") from e
    if not isinstance(raw, list) or len(raw) != len(entries):
        got = len(raw) if isinstance(raw, list) else type(raw).__name__
        raise ClassifierError(f"Expected {len(entries)} results, got {got}")
    return [normalize_result(item, entry.id) for item, entry in zip(raw, entries, strict=True)]


def build_prompt(entries: list[ClassifierRequest]) -> str:
    body = "\n\n---\n\n".join(f"Entry {i} ({e.date}):\n{e.text}" for i, e in enumerate(entries, start=1))
    return f"Rate these {len(entries)} journal entries.\n\n{body}"


def _is_rate_limit(error: Exception) -> bool:
    if getattr(error, "status_code", None) == 429 or getattr(error, "code", None) == 429:
        return True
    if type(error).__name__ == "RateLimitError":
        return True
    message = str(error).lower()
    return any(hint in message for hint in _RATE_LIMIT_HINTS)


CompletionFn = Callable[..., Awaitable[Any]]


class LLMClassifier:
    """Mood classifier backed by ``litellm.acompletion``.

    Model names follow litellm conventions (``"gemini/gemini-2.5-flash"``,
    ``"gpt-4o-mini"``, ``"anthropic/claude-sonnet-4-20250514"``).

    Args:
        model: LiteLLM model string.
        api_key: Provider key. Without one, ``ready`` is False and
            ``classify`` raises ClassifierKeyError before sending anything.
        temperature: Sampling temperature (low keeps ratings consistent).
        timeout: Per-request timeout in seconds passed to litellm.
        completion_fn: Injected async completion callable; defaults to
            ``litellm.acompletion``.
    """

    def __init__(
        self,
        model: str = "gemini/gemini-2.5-flash",
        api_key: str | None = None,
        *,
        temperature: float = 0.3,
        timeout: float = 120,
        max_tokens: int = 8192,
        completion_fn: CompletionFn | None = None,
    ):
        self.model = model
        self.api_key = (api_key or "").strip() or None
        self.temperature = temperature
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._completion_fn = completion_fn
        logger.debug(f"LLMClassifier: model={self.model} key={'set' if self.api_key else 'missing'}")

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> LLMClassifier:
        section = config.validated().classifier
        return cls(
            model=section.model,
            api_key=section.api_key,
            temperature=section.temperature,
            timeout=section.timeout,
            **kwargs,
        )

    @property
    def ready(self) -> bool:
        return self.api_key is not None

    def _get_completion_fn(self) -> CompletionFn:
        if self._completion_fn is not None:
            return self._completion_fn
        try:
            import litellm
        except ImportError:
            raise ImportError("Install classifier support with: pip install chronicle[llm]") from None
        return litellm.acompletion

    async def classify(self, entries: list[ClassifierRequest]) -> list[MoodResult]:
        if not entries:
            return []
        if len(entries) > MAX_ENTRIES_PER_REQUEST:
            raise ClassifierError(f"Maximum {MAX_ENTRIES_PER_REQUEST} entries per batch, got {len(entries)}")
        if not self.ready:
            raise ClassifierKeyError("No classifier API key configured")

        completion = self._get_completion_fn()
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(entries)},
        ]
        try:
            response = await completion(
                model=self.model,
                messages=messages,
                api_key=self.api_key,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except Exception as e:
            if _is_rate_limit(e):
                raise ClassifierRateLimitError(f"Rate limit exceeded: {e}") from e
            raise ClassifierError(f"Mood analysis failed: {str(e)[:500]}") from e

        return parse_results(_response_text(response), entries)


def _response_text(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise ClassifierError("No response candidates generated")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message is not None else None
    return content if isinstance(content, str) else ""
