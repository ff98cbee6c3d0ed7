"""The four transformation strategies and their shared building blocks."""

from __future__ import annotations

import enum
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping

from lineweaver.classifier import ProcessingContext
from lineweaver.config import QUOTES, ProcessingConfig, WhitespacePolicy
from lineweaver.errors import ConfigurationError
from lineweaver.patterns import (
    LEADING_INDENT_RE,
    LINE_BREAK_RE,
    WHITESPACE_RUN_RE,
    match_line,
)
from lineweaver.protector import PLACEHOLDER_RE, Protector, restore
from lineweaver.validator import Severity, ValidationIssue


class Mode(str, enum.Enum):
    SIMPLE = "simple"
    SMART = "smart"
    TERMINAL = "terminal"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str | Mode) -> Mode:
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise ConfigurationError(
                f"Unknown mode '{value}', expected one of {[m.value for m in cls]}", option="mode"
            ) from None


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def escape_text(text: str, table: Mapping[str, str]) -> str:
    """Replace every character found in *table* by its escaped form."""
    if not table:
        return text
    return "".join(table.get(ch, ch) for ch in text)


def _outside_placeholders(text: str, fn: Callable[[str], str]) -> str:
    pieces: list[str] = []
    prev_end = 0
    for match in PLACEHOLDER_RE.finditer(text):
        pieces.append(fn(text[prev_end:match.start()]))
        pieces.append(match.group(0))
        prev_end = match.end()
    pieces.append(fn(text[prev_end:]))
    return "".join(pieces)


def escape_masked(text: str, table: Mapping[str, str]) -> str:
    """Like :func:`escape_text`, but placeholder tokens are left intact."""
    if not table:
        return text
    return _outside_placeholders(text, lambda gap: escape_text(gap, table))


def flatten(text: str) -> str:
    """Turn every line break into a space, collapse whitespace runs and trim."""
    return WHITESPACE_RUN_RE.sub(" ", LINE_BREAK_RE.sub(" ", text)).strip()


def shell_escape_table(config: ProcessingConfig, context: ProcessingContext) -> dict[str, str] | None:
    """Escape table for context-sensitive strategies, or None when not shell-like."""
    if config.auto_detect and config.escape_special_chars and context.shell_intent:
        return config.escape_map()
    return None


def _render_line(
    line: str,
    kind: str | None,
    config: ProcessingConfig,
    tables: Protector,
    escape: Mapping[str, str] | None,
) -> str:
    if kind == "table":
        return tables.hold(line.rstrip(), "table")

    content = escape_masked(line, escape) if escape else line
    if kind == "heading":
        return f"{config.paragraph_separator}{content}"
    if kind == "rule":
        return f"{config.paragraph_separator}{content.strip()}{config.paragraph_separator}"
    if kind in ("quote", "list"):
        return f"{config.list_separator}{content}"
    return content


def segment(
    text: str,
    config: ProcessingConfig,
    tables: Protector,
    escape: Mapping[str, str] | None = None,
) -> str:
    """Insert paragraph and list separators at structural breaks.

    Each line is matched against the structural line table (headings, rules,
    tables, quotes, list items, in that precedence). Blank-line runs become a
    paragraph separator unless the next line already opens with a separator
    or the previous one closes with one. Other line breaks are kept as
    ``\\n`` for the whitespace step to fold.

    Args:
        text: Text with ``\\n`` line breaks only.
        config: Supplies separators and ``detect_markdown``.
        tables: Receives table rows as opaque spans.
        escape: Optional escape table applied to line content.

    Returns:
        Segmented text.
    """
    para = config.paragraph_separator
    seps = tuple(s for s in (config.paragraph_separator, config.list_separator) if s)
    parts: list[str] = []
    pending_break = False

    for line in text.split("\n"):
        if not line.strip():
            pending_break = pending_break or bool(parts)
            continue

        kind = match_line(line, markdown=config.detect_markdown)
        rendered = _render_line(line, kind, config, tables, escape)

        if parts:
            suppressed = (seps and rendered.startswith(seps)) or (para and parts[-1].endswith(para))
            if pending_break and not suppressed:
                parts.append(f" {para} ")
            else:
                parts.append("\n")
        parts.append(rendered)
        pending_break = False

    return "".join(parts)


def apply_whitespace(text: str, policy: WhitespacePolicy, config: ProcessingConfig) -> str:
    """Fold remaining line breaks into ``line_connector`` and collapse whitespace per *policy*."""
    text = text.replace("\n", config.line_connector)
    if policy is WhitespacePolicy.PRESERVE:
        return text
    text = WHITESPACE_RUN_RE.sub(" ", text)
    if policy is WhitespacePolicy.REMOVE:
        for token in (config.paragraph_separator, config.list_separator):
            if token.strip():
                text = re.sub(rf"\s*{re.escape(token)}\s*", lambda _m, t=token: t, text)
    return text


def apply_replacements(text: str, replacements: tuple[tuple[str, str], ...]) -> str:
    """Apply user regex replacements outside placeholder tokens."""
    if not replacements:
        return text
    compiled = [(re.compile(pattern), repl) for pattern, repl in replacements]
    return _outside_placeholders(text, lambda gap: _replace_all(gap, compiled))


def _replace_all(segment_text: str, compiled: list[tuple[re.Pattern[str], str]]) -> str:
    for pattern, repl in compiled:
        segment_text = pattern.sub(repl, segment_text)
    return segment_text


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class Strategy(ABC):
    """One transformation pipeline.

    ``apply`` receives masked text when ``uses_protection`` is set and the
    raw text otherwise; ``finalize`` runs after protected spans are restored.
    Strategies hold no state between calls.
    """

    mode: Mode
    uses_protection: bool = True

    @abstractmethod
    def apply(self, text: str, config: ProcessingConfig, context: ProcessingContext) -> str:
        """Transform *text*."""

    def finalize(self, text: str, config: ProcessingConfig) -> tuple[str, list[ValidationIssue]]:
        return text, []

    def chunkable(self, config: ProcessingConfig) -> bool:
        """Whether independent chunks can be processed and joined with a space."""
        return False


class SimpleStrategy(Strategy):
    mode = Mode.SIMPLE
    uses_protection = False

    def apply(self, text: str, config: ProcessingConfig, context: ProcessingContext) -> str:
        return flatten(text)

    def chunkable(self, config: ProcessingConfig) -> bool:
        return True


class SmartStrategy(Strategy):
    """Structure-preserving compaction with separator tokens."""

    mode = Mode.SMART

    def apply(self, text: str, config: ProcessingConfig, context: ProcessingContext) -> str:
        text = LINE_BREAK_RE.sub("\n", text)
        tables = Protector(text)
        segmented = segment(text, config, tables, shell_escape_table(config, context))
        compact = WHITESPACE_RUN_RE.sub(" ", segmented).strip()
        return restore(compact, tables.spans)


class TerminalStrategy(Strategy):
    """Single physical line, shell metacharacters escaped.

    Spans are not protected: code and URLs are escaped like everything else,
    otherwise their newlines and metacharacters would reach the shell.
    """

    mode = Mode.TERMINAL
    uses_protection = False

    def apply(self, text: str, config: ProcessingConfig, context: ProcessingContext) -> str:
        table = config.escape_map() if config.escape_special_chars else {}
        if config.preserve_line_intent:
            lines = (WHITESPACE_RUN_RE.sub(" ", line).strip() for line in LINE_BREAK_RE.split(text))
            return config.newline_token.join(escape_text(line, table) for line in lines if line)
        return escape_text(flatten(text), table)

    def chunkable(self, config: ProcessingConfig) -> bool:
        return not config.preserve_line_intent


class CustomStrategy(Strategy):
    """Pipeline assembled from configuration flags.

    Order: (protect) -> strip indentation / convert tabs -> normalize line
    breaks -> segment -> whitespace policy -> replacements -> (restore) ->
    trim -> truncate -> quote or here-string wrapping.
    """

    mode = Mode.CUSTOM

    def apply(self, text: str, config: ProcessingConfig, context: ProcessingContext) -> str:
        if config.convert_tabs:
            text = text.replace("\t", " " * config.tab_width)
        if not config.preserve_indentation:
            text = LEADING_INDENT_RE.sub("", text)
        text = LINE_BREAK_RE.sub("\n", text)

        escape = shell_escape_table(config, context)
        tables = Protector(text)
        if config.preserve_structure:
            text = segment(text, config, tables, escape)
        elif escape:
            text = escape_masked(text, escape)

        text = apply_whitespace(text, config.effective_whitespace, config)
        text = apply_replacements(text, config.custom_replacements)
        return restore(text, tables.spans)

    def finalize(self, text: str, config: ProcessingConfig) -> tuple[str, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        if config.trim:
            text = text.strip()
        if config.truncate and len(text) > config.max_line_length:
            issues.append(ValidationIssue(
                severity=Severity.INFO,
                code="truncated",
                message=f"Output truncated from {len(text)} to {config.max_line_length} characters",
            ))
            text = text[:config.max_line_length]
        if config.use_here_string:
            delimiter = config.here_string_delimiter
            text = f"{delimiter}\n{text}\n{delimiter[::-1]}"
        elif config.wrap_in_quotes:
            quote = QUOTES[config.quote_type]
            text = f"{quote}{text}{quote}"
        return text, issues


STRATEGIES: dict[Mode, Strategy] = {
    strategy.mode: strategy
    for strategy in (SimpleStrategy(), SmartStrategy(), TerminalStrategy(), CustomStrategy())
}


def get_strategy(mode: str | Mode) -> Strategy:
    """Return the strategy for *mode*; raises ConfigurationError when unknown."""
    return STRATEGIES[Mode.parse(mode)]
