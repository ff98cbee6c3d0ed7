"""Precompiled recognizers shared by the protector, strategies and classifier.

Structural detection is kept as ordered tables of ``(name, pattern)`` or
``(name, pattern, weight)`` rows so each rule can be tested and extended on
its own.
"""

from __future__ import annotations

import dataclasses
import re

# --- Protected spans ---
FENCE = "```"
_INLINE_CODE_RE = re.compile(r"`[^`\n]+`")
_URL_RE = re.compile(r"https?://[^\s]+")

# Protector precedence after fences (which are scanned by hand).
SPAN_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("inline_code", _INLINE_CODE_RE),
    ("url", _URL_RE),
)

# --- Line breaks and whitespace ---
LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
WHITESPACE_RUN_RE = re.compile(r"\s+")
HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")
LEADING_INDENT_RE = re.compile(r"^[ \t]+", re.MULTILINE)
BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")

# --- Markdown / structure line patterns ---
HEADING_RE = re.compile(r"^#{1,6}\s+\S")
HORIZONTAL_RULE_RE = re.compile(r"^(\s*[-*_]){3,}\s*$")
TABLE_ROW_RE = re.compile(r"^\|(.+)\|\s*$")
BLOCKQUOTE_RE = re.compile(r"^\s*>\s+\S")
ORDERED_ITEM_RE = re.compile(r"^\s*\d+[.)）]\s+")
BULLET_ITEM_RE = re.compile(r"^\s*[-*+•]\s+")
LETTERED_ITEM_RE = re.compile(r"^\s*[a-zA-Z][.)]\s+")


@dataclasses.dataclass(frozen=True, slots=True)
class LineRule:
    """One row of the structural line table."""

    kind: str                   # "heading", "rule", "table", "quote", "list"
    pattern: re.Pattern[str]
    markdown_only: bool         # skipped when markdown detection is off


# Order is precedence: the first matching row decides how a line is treated.
LINE_RULES: tuple[LineRule, ...] = (
    LineRule("heading", HEADING_RE, True),
    LineRule("rule", HORIZONTAL_RULE_RE, True),
    LineRule("table", TABLE_ROW_RE, True),
    LineRule("quote", BLOCKQUOTE_RE, True),
    LineRule("list", ORDERED_ITEM_RE, False),
    LineRule("list", BULLET_ITEM_RE, False),
    LineRule("list", LETTERED_ITEM_RE, False),
)


def match_line(line: str, *, markdown: bool = True) -> str | None:
    """Return the structural kind of *line*, or None for ordinary prose."""
    for rule in LINE_RULES:
        if rule.markdown_only and not markdown:
            continue
        if rule.pattern.match(line):
            return rule.kind
    return None


# --- Context heuristics: (feature, pattern, weight) ---
TERMINAL_RULES: tuple[tuple[str, re.Pattern[str], float], ...] = (
    ("shell_variable", re.compile(r"\$\{?\w+"), 0.2),
    ("cmdlet", re.compile(r"\b[A-Z][a-z]+-[A-Z][a-zA-Z]+\b"), 0.2),
    ("command_flag", re.compile(r"(?:^|\s)--?[a-zA-Z][\w-]*", re.MULTILINE), 0.2),
    ("pipe", re.compile(r"\|\s*[\w$]"), 0.2),
    ("redirect", re.compile(r"\w\s*>{1,2}\s*[\w./$&]"), 0.2),
    ("backtick_escape", re.compile(r"`[\w$]"), 0.2),
    ("here_string", re.compile(r"@[\"'].*?[\"']@", re.DOTALL), 0.2),
)
SHELL_CHAR_RE = re.compile(r"[$|><&\"'`]")
SHELL_CHAR_WEIGHT = 0.05
SHELL_CHAR_CAP = 0.3

CODE_RULES: tuple[tuple[str, re.Pattern[str], float], ...] = (
    (
        "code_keyword",
        re.compile(
            r"^\s*(function|def|class|import|const|let|var|public|private|static)\s+",
            re.MULTILINE,
        ),
        0.4,
    ),
    ("code_directive", re.compile(r"^(#!/|#include|using\s|namespace\s|package\s)", re.MULTILINE), 0.4),
    ("indented_call", re.compile(r"^(\s{4,}|\t).*\w+\s*\(", re.MULTILINE), 0.3),
    ("statement_end", re.compile(r"[{};]\s*$", re.MULTILINE), 0.2),
)

MARKDOWN_RULES: tuple[tuple[str, re.Pattern[str], float], ...] = (
    ("md_heading", re.compile(r"^#{1,6}\s", re.MULTILINE), 0.3),
    ("md_fence", re.compile(r"^```", re.MULTILINE), 0.4),
    ("md_link", re.compile(r"!?\[[^\]]+\]\([^)\s]+\)"), 0.3),
    ("md_bold", re.compile(r"\*\*[^*\n]+\*\*"), 0.2),
    ("md_table", re.compile(r"^\|.+\|\s*$", re.MULTILINE), 0.3),
    ("md_quote", re.compile(r"^>\s", re.MULTILINE), 0.2),
    ("md_rule", re.compile(r"^(---+|\*\*\*+|___+)\s*$", re.MULTILINE), 0.2),
)

LIST_RULES: tuple[tuple[str, re.Pattern[str], float], ...] = (
    ("bullet_item", re.compile(r"^\s*[-*+•]\s+\S", re.MULTILINE), 0.35),
    ("ordered_item", re.compile(r"^\s*\d+[.)）]\s+\S", re.MULTILINE), 0.35),
    ("lettered_item", re.compile(r"^\s*[a-zA-Z][.)]\s+\S", re.MULTILINE), 0.2),
)
