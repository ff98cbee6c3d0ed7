"""Heuristic context classification of input text."""

from __future__ import annotations

import dataclasses
import enum
import re

from lineweaver.patterns import (
    CODE_RULES,
    LIST_RULES,
    MARKDOWN_RULES,
    SHELL_CHAR_CAP,
    SHELL_CHAR_RE,
    SHELL_CHAR_WEIGHT,
    TERMINAL_RULES,
)

SAMPLE_SIZE = 2000
CONFIDENCE_THRESHOLD = 0.3


class ContextType(str, enum.Enum):
    PLAIN = "plain"
    CODE = "code"
    MARKDOWN = "markdown"
    LIST = "list"
    TERMINAL = "terminal"


# Tie-break order when two categories score the same.
_PRECEDENCE = (ContextType.TERMINAL, ContextType.CODE, ContextType.MARKDOWN, ContextType.LIST)

_RULES: dict[ContextType, tuple[tuple[str, re.Pattern[str], float], ...]] = {
    ContextType.TERMINAL: TERMINAL_RULES,
    ContextType.CODE: CODE_RULES,
    ContextType.MARKDOWN: MARKDOWN_RULES,
    ContextType.LIST: LIST_RULES,
}


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessingContext:
    """Read-only classification of one input."""

    type: ContextType
    confidence: float                   # 0.0-1.0
    features: tuple[str, ...]           # matched heuristic names
    scores: dict[str, float]            # per-category score, clamped
    shell_intent: bool                  # terminal score reached the threshold


def _score(text: str, rules: tuple[tuple[str, re.Pattern[str], float], ...]) -> tuple[float, list[str]]:
    score = 0.0
    features: list[str] = []
    for name, pattern, weight in rules:
        if pattern.search(text):
            score += weight
            features.append(name)
    return score, features


def classify(text: str, sample_size: int = SAMPLE_SIZE) -> ProcessingContext:
    """Classify *text* as plain, code, markdown, list or terminal content.

    Only the first *sample_size* characters are inspected; content whose
    distinguishing features start later may be misclassified.

    Args:
        text: Input text.
        sample_size: Size of the inspected prefix.

    Returns:
        A fresh :class:`ProcessingContext`.
    """
    sample = text[:sample_size].strip()
    scores: dict[str, float] = {}
    features: list[str] = []

    for category, rules in _RULES.items():
        score, matched = _score(sample, rules)
        if category is ContextType.TERMINAL:
            specials = len(SHELL_CHAR_RE.findall(sample))
            if specials:
                score += min(specials * SHELL_CHAR_WEIGHT, SHELL_CHAR_CAP)
                matched.append("shell_chars")
        scores[category.value] = round(min(score, 1.0), 4)
        features.extend(matched)

    best = max(_PRECEDENCE, key=lambda c: (scores[c.value], -_PRECEDENCE.index(c)))
    confidence = scores[best.value]
    shell_intent = scores[ContextType.TERMINAL.value] >= CONFIDENCE_THRESHOLD

    if confidence < CONFIDENCE_THRESHOLD:
        return ProcessingContext(
            type=ContextType.PLAIN,
            confidence=confidence,
            features=tuple(features),
            scores=scores,
            shell_intent=shell_intent,
        )

    if shell_intent:
        features.append("shell_intent")
    return ProcessingContext(
        type=best,
        confidence=confidence,
        features=tuple(features),
        scores=scores,
        shell_intent=shell_intent,
    )
