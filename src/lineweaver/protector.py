"""Placeholder protection for code blocks, inline code and URLs.

Protected substrings are swapped for purely alphanumeric placeholder tokens
before any whitespace or escaping transform runs, then put back verbatim.
"""

from __future__ import annotations

import dataclasses
import re
import secrets

from lineweaver.config import ProcessingConfig
from lineweaver.patterns import FENCE, SPAN_PATTERNS

_PLACEHOLDER_PREFIX = "LWP"
PLACEHOLDER_RE = re.compile(_PLACEHOLDER_PREFIX + r"[0-9a-f]{8}N\d+Z")


@dataclasses.dataclass(frozen=True, slots=True)
class ProtectedSpan:
    """A protected substring and the placeholder standing in for it."""

    index: int          # insertion order, also encoded in the placeholder
    placeholder: str
    text: str           # the original substring, restored verbatim
    kind: str           # "fenced_code", "inline_code", "url", "table"


class Protector:
    """Issues placeholders for one invocation.

    The nonce is regenerated until the placeholder prefix does not occur in
    the text, so no input can contain a string that ``restore`` would touch.
    """

    def __init__(self, text: str) -> None:
        nonce = secrets.token_hex(4)
        while f"{_PLACEHOLDER_PREFIX}{nonce}" in text:
            nonce = secrets.token_hex(4)
        self._prefix = f"{_PLACEHOLDER_PREFIX}{nonce}N"
        self.spans: list[ProtectedSpan] = []

    def hold(self, original: str, kind: str) -> str:
        """Record *original* and return its placeholder."""
        index = len(self.spans)
        placeholder = f"{self._prefix}{index}Z"
        self.spans.append(ProtectedSpan(index=index, placeholder=placeholder, text=original, kind=kind))
        return placeholder


def _find_spans(text: str, *, code: bool, urls: bool) -> list[tuple[int, int, str]]:
    """Scan left to right for protected spans, fences first.

    Returns:
        Non-overlapping ``(start, end, kind)`` tuples in text order.
    """
    patterns = [
        (kind, pattern)
        for kind, pattern in SPAN_PATTERNS
        if (kind == "inline_code" and code) or (kind == "url" and urls)
    ]
    spans: list[tuple[int, int, str]] = []
    pos = 0
    length = len(text)

    while pos < length:
        best: tuple[int, int, str] | None = None

        if code:
            fence_start = text.find(FENCE, pos)
            if fence_start != -1:
                close = text.find(FENCE, fence_start + len(FENCE))
                # Unterminated fence: protect through end of input
                fence_end = length if close == -1 else close + len(FENCE)
                best = (fence_start, fence_end, "fenced_code")

        for kind, pattern in patterns:
            limit = best[0] if best else length
            match = pattern.search(text, pos, limit)
            if match and (best is None or match.start() < best[0]):
                best = (match.start(), match.end(), kind)

        if best is None:
            break
        spans.append(best)
        pos = best[1]

    return spans


def protect(text: str, config: ProcessingConfig | None = None) -> tuple[str, list[ProtectedSpan]]:
    """Replace code blocks, inline code and URLs with placeholders.

    Args:
        text: Input text.
        config: Supplies the ``preserve_code_blocks`` / ``preserve_urls`` toggles.

    Returns:
        ``(masked_text, spans)``; ``restore(masked_text, spans) == text``.
    """
    config = config or ProcessingConfig()
    found = _find_spans(text, code=config.preserve_code_blocks, urls=config.preserve_urls)
    if not found:
        return text, []

    protector = Protector(text)
    parts: list[str] = []
    prev_end = 0
    for start, end, kind in found:
        parts.append(text[prev_end:start])
        parts.append(protector.hold(text[start:end], kind))
        prev_end = end
    parts.append(text[prev_end:])
    return "".join(parts), protector.spans


def restore(masked: str, spans: list[ProtectedSpan]) -> str:
    """Put every protected span back, in recorded order."""
    for span in spans:
        masked = masked.replace(span.placeholder, span.text, 1)
    return masked
