"""Text helpers shared by extraction, structuring and scoring."""

import re
from typing import List

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HORIZONTAL_SPACE = re.compile(r"[ \t ]+")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    """Number of whitespace-separated tokens in ``text``."""
    return len(text.split())


def normalize_text(text: str) -> str:
    """Clean extracted text for structuring.

    Unifies line endings, drops control characters, collapses runs of
    spaces and keeps at most one blank line between paragraphs.
    """
    if not text:
        return ""
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    lines = [_HORIZONTAL_SPACE.sub(" ", line).strip() for line in cleaned.split("\n")]
    cleaned = "\n".join(lines)
    cleaned = _EXCESS_BLANK_LINES.sub("\n\n", cleaned)
    return cleaned.strip()


def normalize_key(value: str) -> str:
    """Normalize a title or name for comparison.

    - Convert to lowercase
    - Remove punctuation
    - Collapse whitespace
    """
    if not value:
        return ""
    normalized = _PUNCTUATION.sub(" ", value.lower())
    return _WHITESPACE.sub(" ", normalized).strip()


def split_text_into_word_batches(
    text: str, max_words: int, min_words: int = 0
) -> List[str]:
    """Split ``text`` into batches of at most ``max_words`` words.

    When the final batch would be shorter than ``min_words`` the last two
    batches are rebalanced so both sit near the midpoint. Empty text
    still yields a single empty batch.
    """
    words = text.split()
    if not words:
        return [""]
    if max_words <= 0 or len(words) <= max_words:
        return [" ".join(words)]

    batches = [words[i : i + max_words] for i in range(0, len(words), max_words)]

    if len(batches) > 1 and len(batches[-1]) < min_words:
        merged = batches[-2] + batches[-1]
        midpoint = len(merged) // 2
        batches[-2:] = [merged[:midpoint], merged[midpoint:]]

    return [" ".join(batch) for batch in batches]
