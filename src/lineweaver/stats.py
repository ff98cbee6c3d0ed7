"""Character, word, line and paragraph counts."""

from __future__ import annotations

import dataclasses
import re

_WHITESPACE_RE = re.compile(r"\s")
_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
_PARAGRAPH_SPLIT_RE = re.compile(r"\r\n\s*\r\n|\r\s*\r|\n\s*\n")


@dataclasses.dataclass(frozen=True, slots=True)
class TextStats:
    characters: int
    characters_no_spaces: int
    words: int
    lines: int
    paragraphs: int


def get_stats(text: str) -> TextStats:
    """Count characters, words, lines and paragraphs in *text*."""
    if not text:
        return TextStats(characters=0, characters_no_spaces=0, words=0, lines=0, paragraphs=0)

    stripped = text.strip()
    return TextStats(
        characters=len(text),
        characters_no_spaces=len(_WHITESPACE_RE.sub("", text)),
        words=len(stripped.split()) if stripped else 0,
        lines=len(_LINE_SPLIT_RE.split(text)),
        paragraphs=len(_PARAGRAPH_SPLIT_RE.split(text)) if stripped else 0,
    )


def compression_ratio(original: str, processed: str) -> float:
    """Percentage of characters removed: ``(len(o) - len(p)) / len(o) * 100``."""
    if not original:
        return 0.0
    return (len(original) - len(processed)) / len(original) * 100
