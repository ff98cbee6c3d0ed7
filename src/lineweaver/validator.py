"""Advisory post-transform checks."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterable, Mapping

from lineweaver.classifier import ProcessingContext
from lineweaver.config import ProcessingConfig


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclasses.dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One diagnostic attached to a result."""

    severity: Severity
    code: str
    message: str
    suggestion: str | None = None

    @classmethod
    def from_error(cls, error: Exception, severity: Severity = Severity.ERROR) -> ValidationIssue:
        return cls(severity=severity, code=getattr(error, "code", "error"), message=str(error))


def count_unescaped(text: str, table: Mapping[str, str], extra_tokens: Iterable[str] = ()) -> int:
    """Count characters from *table* that are not part of an escape sequence.

    The scan is greedy from left to right: at each position the longest
    escape sequence (or extra token, such as a newline token) is consumed
    first, otherwise a bare table character counts as unescaped.
    """
    sequences = sorted({*table.values(), *extra_tokens}, key=len, reverse=True)
    sequences = [s for s in sequences if s]
    count = 0
    i = 0
    while i < len(text):
        for seq in sequences:
            if text.startswith(seq, i):
                i += len(seq)
                break
        else:
            if text[i] in table:
                count += 1
            i += 1
    return count


def validate(
    text: str,
    config: ProcessingConfig,
    context: ProcessingContext,
) -> list[ValidationIssue]:
    """Check transformed *text*; never blocks or mutates the output.

    Args:
        text: Transformed text.
        config: Configuration used for the transform.
        context: Classification of the original input.

    Returns:
        Warning/info issues; the current checks never produce errors.
    """
    issues: list[ValidationIssue] = []

    longest = max((len(line) for line in text.split("\n")), default=0)
    if longest > config.max_line_length:
        issues.append(ValidationIssue(
            severity=Severity.WARNING,
            code="length",
            message=f"Output line length exceeds the limit ({longest}/{config.max_line_length})",
            suggestion="Consider splitting the text into smaller pieces",
        ))

    if context.shell_intent:
        stripped = text
        for token in (config.paragraph_separator, config.list_separator):
            if token:
                stripped = stripped.replace(token, " ")
        unescaped = count_unescaped(stripped, config.escape_map(), (config.newline_token,))
        if unescaped:
            issues.append(ValidationIssue(
                severity=Severity.INFO,
                code="unescaped_chars",
                message=f"Detected {unescaped} unescaped shell-sensitive characters",
                suggestion="Use terminal mode to escape them for shell pasting",
            ))

    return issues
