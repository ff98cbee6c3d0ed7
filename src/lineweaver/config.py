"""Processing configuration: defaults, sanitation, escape dialects and presets."""

from __future__ import annotations

import dataclasses
import enum
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from lineweaver.errors import ConfigurationError


class CompressionLevel(str, enum.Enum):
    NONE = "none"
    LIGHT = "light"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class WhitespacePolicy(str, enum.Enum):
    PRESERVE = "preserve"
    NORMALIZE = "normalize"
    REMOVE = "remove"


_LEVEL_WHITESPACE = {
    CompressionLevel.NONE: WhitespacePolicy.PRESERVE,
    CompressionLevel.LIGHT: WhitespacePolicy.NORMALIZE,
    CompressionLevel.BALANCED: WhitespacePolicy.NORMALIZE,
    CompressionLevel.AGGRESSIVE: WhitespacePolicy.REMOVE,
}


@dataclasses.dataclass(frozen=True, slots=True)
class EscapeDialect:
    """Character-to-escape mapping for one shell family."""

    name: str
    escape_char: str            # the dialect's own escape prefix
    table: Mapping[str, str]    # char -> escaped form
    newline_token: str          # used when line intent is preserved


POWERSHELL = EscapeDialect(
    name="powershell",
    escape_char="`",
    table={
        "`": "``",
        '"': '""',
        "'": "''",
        "$": "`$",
        "|": "`|",
        ">": "`>",
        "<": "`<",
        "&": "`&",
        "(": "`(",
        ")": "`)",
        "{": "`{",
        "}": "`}",
        "[": "`[",
        "]": "`]",
        "#": "`#",
        ";": "`;",
    },
    newline_token="`n",
)

POSIX = EscapeDialect(
    name="posix",
    escape_char="\\",
    table={
        "\\": "\\\\",
        '"': '\\"',
        "'": "\\'",
        "`": "\\`",
        "$": "\\$",
        "|": "\\|",
        ">": "\\>",
        "<": "\\<",
        "&": "\\&",
        "(": "\\(",
        ")": "\\)",
        "{": "\\{",
        "}": "\\}",
        "[": "\\[",
        "]": "\\]",
        "#": "\\#",
        ";": "\\;",
    },
    newline_token="\\n",
)

DIALECTS: dict[str, EscapeDialect] = {d.name: d for d in (POWERSHELL, POSIX)}

QUOTES = {"double": '"', "single": "'", "backtick": "`"}

MAX_LINE_LENGTH_BOUNDS = (50, 2000)
TAB_WIDTH_BOUNDS = (1, 8)
CHUNK_SIZE_BOUNDS = (256, 1_000_000)
LARGE_INPUT_BOUNDS = (1_000, 1_000_000)

# Original option names accepted as aliases.
_ALIASES = {
    "paragraphSeparator": "paragraph_separator",
    "listSeparator": "list_separator",
    "maxLineLength": "max_line_length",
    "compressionLevel": "compression_level",
    "spaceHandling": "whitespace",
    "preserveCodeBlocks": "preserve_code_blocks",
    "preserveCode": "preserve_code_blocks",
    "preserveUrls": "preserve_urls",
    "preserveIndentation": "preserve_indentation",
    "preserveStructure": "preserve_structure",
    "detectMarkdown": "detect_markdown",
    "escapeSpecialChars": "escape_special_chars",
    "escapePatterns": "escape_patterns",
    "useBacktick": "preserve_line_intent",
    "useBacktickForNewlines": "preserve_line_intent",
    "autoDetect": "auto_detect",
    "wrapInQuotes": "wrap_in_quotes",
    "quoteType": "quote_type",
    "useHereString": "use_here_string",
    "customReplacements": "custom_replacements",
    "largeInputThreshold": "large_input_threshold",
    "chunkSize": "chunk_size",
    "tabWidth": "tab_width",
    "convertTabs": "convert_tabs",
    "lineConnector": "line_connector",
    "customLineBreak": "line_connector",
    "escapeTable": "escape_table",
}


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessingConfig:
    """Options for one ``process`` call. Build it with :meth:`from_options`."""

    paragraph_separator: str = "[PARA]"
    list_separator: str = "[LIST]"
    max_line_length: int = 500
    compression_level: CompressionLevel = CompressionLevel.BALANCED
    whitespace: WhitespacePolicy | None = None
    preserve_code_blocks: bool = True
    preserve_urls: bool = True
    preserve_indentation: bool = False
    convert_tabs: bool = False
    tab_width: int = 4
    preserve_structure: bool = True
    detect_markdown: bool = True
    escape_special_chars: bool = True
    escape_patterns: tuple[str, ...] | None = None
    shell: str = "powershell"
    escape_table: tuple[tuple[str, str], ...] | None = None
    preserve_line_intent: bool = False
    auto_detect: bool = True
    trim: bool = True
    truncate: bool = False
    wrap_in_quotes: bool = False
    quote_type: str = "double"
    use_here_string: bool = False
    here_string_delimiter: str = '@"'
    custom_replacements: tuple[tuple[str, str], ...] = ()
    large_input_threshold: int = 50_000
    chunk_size: int = 8192
    line_connector: str = " "      # replaces line breaks inside a paragraph (custom mode)
    encoding: str = "utf8"

    # -- derived views -----------------------------------------------------

    @property
    def dialect(self) -> EscapeDialect:
        return DIALECTS[self.shell]

    @property
    def effective_whitespace(self) -> WhitespacePolicy:
        if self.whitespace is not None:
            return self.whitespace
        return _LEVEL_WHITESPACE[self.compression_level]

    @property
    def newline_token(self) -> str:
        return self.dialect.newline_token

    def escape_map(self) -> dict[str, str]:
        """Return the char -> escape mapping this configuration escapes.

        An explicit ``escape_table`` is used as given. Otherwise the dialect
        table is narrowed to ``escape_patterns``; the dialect's own escape
        character stays in the map so escaped output remains unambiguous.
        """
        if self.escape_table is not None:
            table = dict(self.escape_table)
            if self.escape_patterns is None:
                return table
            return {ch: table[ch] for ch in self.escape_patterns if ch in table}
        dialect = self.dialect
        if self.escape_patterns is None:
            return dict(dialect.table)
        selected = {ch: dialect.table[ch] for ch in self.escape_patterns if ch in dialect.table}
        if selected:
            selected.setdefault(dialect.escape_char, dialect.table[dialect.escape_char])
        return selected

    def fingerprint(self) -> dict[str, Any]:
        """JSON-serialisable view used for cache keys."""
        data = dataclasses.asdict(self)
        data["compression_level"] = self.compression_level.value
        data["whitespace"] = self.whitespace.value if self.whitespace else None
        return data

    # -- construction ------------------------------------------------------

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None = None,
        *,
        base: ProcessingConfig | None = None,
    ) -> tuple[ProcessingConfig, list[ConfigurationError]]:
        """Merge *options* onto defaults (or *base*) and sanitize the result.

        Unknown, mistyped and out-of-range options never raise: they are
        dropped or clamped and reported in the returned warning list.

        Args:
            options: Overrides keyed by field name or original camelCase name.
            base: Configuration to merge onto instead of the defaults.

        Returns:
            ``(config, warnings)``.
        """
        warnings: list[ConfigurationError] = []
        values: dict[str, Any] = {}
        field_names = {f.name for f in dataclasses.fields(cls)}

        # base fields go through the same coercion as options
        sources = [dataclasses.asdict(base)] if base is not None else []
        sources.append(dict(options or {}))
        for source in sources:
            for raw_key, value in source.items():
                key = _ALIASES.get(raw_key, raw_key)
                if key not in field_names:
                    warnings.append(ConfigurationError(f"Unknown option '{raw_key}' ignored", option=raw_key))
                    continue
                if value is None and key not in _NULLABLE:
                    continue
                try:
                    values[key] = _COERCE.get(key, _identity)(value)
                except (TypeError, ValueError, OverflowError) as e:
                    warnings.append(ConfigurationError(f"Invalid value for '{raw_key}': {e}", option=key))

        config = cls(**values)
        return _sanitize(config, warnings), warnings

    @classmethod
    def from_preset(cls, name: str, **overrides: Any) -> tuple[ProcessingConfig, list[ConfigurationError]]:
        """Build a configuration from a named preset plus overrides."""
        if name not in PRESETS:
            raise ConfigurationError(
                f"Unknown preset '{name}', expected one of {sorted(PRESETS)}", option="preset"
            )
        return cls.from_options({**PRESETS[name], **overrides})


_NULLABLE = {"whitespace", "escape_patterns", "escape_table"}


def _identity(value: Any) -> Any:
    return value


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "1", "yes", "on"}:
        return True
    if isinstance(value, str) and value.lower() in {"false", "0", "no", "off"}:
        return False
    if isinstance(value, int):
        return bool(value)
    raise TypeError(f"expected a boolean, got {value!r}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError(f"expected an integer, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    return int(value)


def _to_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {value!r}")
    return value


def _to_escape_patterns(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(dict.fromkeys(value))
    chars = tuple(dict.fromkeys(value))
    for ch in chars:
        if not isinstance(ch, str) or len(ch) != 1:
            raise ValueError(f"escape patterns must be single characters, got {ch!r}")
    return chars


def _to_pairs(value: Any) -> tuple[tuple[str, str], ...]:
    items: Iterable[Any] = value.items() if isinstance(value, Mapping) else value
    pairs: list[tuple[str, str]] = []
    for item in items:
        key, replacement = item
        pairs.append((_to_str(key), _to_str(replacement)))
    return tuple(pairs)


_COERCE = {
    "paragraph_separator": _to_str,
    "list_separator": _to_str,
    "max_line_length": _to_int,
    "compression_level": CompressionLevel,
    "whitespace": lambda v: None if v is None else WhitespacePolicy(v),
    "preserve_code_blocks": _to_bool,
    "preserve_urls": _to_bool,
    "preserve_indentation": _to_bool,
    "convert_tabs": _to_bool,
    "tab_width": _to_int,
    "preserve_structure": _to_bool,
    "detect_markdown": _to_bool,
    "escape_special_chars": _to_bool,
    "escape_patterns": lambda v: None if v is None else _to_escape_patterns(v),
    "shell": lambda v: _to_str(v).lower(),
    "escape_table": lambda v: None if v is None else _to_pairs(v),
    "preserve_line_intent": _to_bool,
    "auto_detect": _to_bool,
    "trim": _to_bool,
    "truncate": _to_bool,
    "wrap_in_quotes": _to_bool,
    "quote_type": lambda v: _to_str(v).lower(),
    "use_here_string": _to_bool,
    "here_string_delimiter": _to_str,
    "custom_replacements": _to_pairs,
    "large_input_threshold": _to_int,
    "chunk_size": _to_int,
    "line_connector": _to_str,
    "encoding": _to_str,
}


def _clamp(
    config: ProcessingConfig,
    name: str,
    bounds: tuple[int, int],
    warnings: list[ConfigurationError],
) -> dict[str, int]:
    low, high = bounds
    value = getattr(config, name)
    clamped = max(low, min(high, value))
    if clamped != value:
        warnings.append(ConfigurationError(f"'{name}' must be within {low}-{high}, clamped {value} to {clamped}", option=name))
        return {name: clamped}
    return {}


def _sanitize(config: ProcessingConfig, warnings: list[ConfigurationError]) -> ProcessingConfig:
    changes: dict[str, Any] = {}
    changes.update(_clamp(config, "max_line_length", MAX_LINE_LENGTH_BOUNDS, warnings))
    changes.update(_clamp(config, "tab_width", TAB_WIDTH_BOUNDS, warnings))
    changes.update(_clamp(config, "chunk_size", CHUNK_SIZE_BOUNDS, warnings))
    changes.update(_clamp(config, "large_input_threshold", LARGE_INPUT_BOUNDS, warnings))

    if config.shell not in DIALECTS:
        warnings.append(ConfigurationError(f"Unknown shell dialect '{config.shell}', using powershell", option="shell"))
        changes["shell"] = "powershell"

    if config.quote_type not in QUOTES:
        warnings.append(ConfigurationError(f"Unknown quote type '{config.quote_type}', using double", option="quote_type"))
        changes["quote_type"] = "double"

    if config.wrap_in_quotes and config.use_here_string:
        warnings.append(ConfigurationError(
            "Quote wrapping and here-string wrapping conflict; using the here-string",
            option="wrap_in_quotes",
        ))
        changes["wrap_in_quotes"] = False

    if config.escape_patterns is not None:
        known = set(dict(config.escape_table)) if config.escape_table is not None else set(
            DIALECTS.get(config.shell, POWERSHELL).table
        )
        unknown = [ch for ch in config.escape_patterns if ch not in known]
        if unknown:
            warnings.append(ConfigurationError(
                f"No escape rule for {''.join(unknown)!r}; those characters are left as-is",
                option="escape_patterns",
            ))
        if config.escape_special_chars and not config.escape_patterns:
            warnings.append(ConfigurationError(
                "Escaping is enabled but no characters are selected",
                option="escape_patterns",
            ))

    valid_pairs: list[tuple[str, str]] = []
    for pattern, replacement in config.custom_replacements:
        try:
            re.compile(pattern)
        except re.error as e:
            warnings.append(ConfigurationError(f"Invalid replacement pattern '{pattern}': {e}", option="custom_replacements"))
            continue
        valid_pairs.append((pattern, replacement))
    if len(valid_pairs) != len(config.custom_replacements):
        changes["custom_replacements"] = tuple(valid_pairs)

    if not config.here_string_delimiter.startswith("@"):
        warnings.append(ConfigurationError("Here-string delimiter must start with '@', using '@\"'", option="here_string_delimiter"))
        changes["here_string_delimiter"] = '@"'

    return dataclasses.replace(config, **changes) if changes else config


# Named bundles of overrides carried over from the original presets.
PRESETS: dict[str, dict[str, Any]] = {
    "developer": {
        "max_line_length": 800,
        "preserve_structure": True,
        "preserve_indentation": True,
        "escape_special_chars": False,
        "compression_level": "none",
    },
    "cli-poweruser": {
        "max_line_length": 400,
        "escape_special_chars": True,
        "escape_patterns": ["$", "|", ">", "<", "&", '"', "'", "`"],
        "preserve_line_intent": True,
        "compression_level": "balanced",
    },
    "content-creator": {
        "max_line_length": 600,
        "preserve_structure": True,
        "preserve_code_blocks": True,
        "escape_special_chars": False,
        "compression_level": "light",
    },
    "system-admin": {
        "max_line_length": 200,
        "escape_special_chars": True,
        "wrap_in_quotes": True,
        "compression_level": "aggressive",
    },
}
