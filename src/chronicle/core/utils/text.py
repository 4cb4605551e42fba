"""Text helpers shared by the journal pipeline."""

import re

ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")


def make_excerpt(text: str, max_length: int = 220) -> str:
    """Collapse *text* to a single line, truncated to *max_length* with an ellipsis."""
    if not text:
        return ""
    one_line = _WHITESPACE_RE.sub(" ", text).strip()
    if len(one_line) <= max_length:
        return one_line
    return one_line[: max_length - 1].rstrip() + ELLIPSIS


def string_hash(value: str) -> int:
    """Polynomial string hash ``h = h*31 + code`` kept to unsigned 32 bits.

    Iterates UTF-16 code units so non-BMP characters hash the same way
    they do in browser clients that share the month index.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & 0xFFFFFFFF
    return h
