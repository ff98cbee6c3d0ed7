"""Command-line wrapper: ``lineweaver [FILE] --mode smart``."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from lineweaver.classifier import classify
from lineweaver.config import PRESETS
from lineweaver.engine import Outcome, process
from lineweaver.logging_config import setup_logging
from lineweaver.strategies import Mode


def _parse_option(raw: str) -> tuple[str, Any]:
    """Parse ``KEY=VALUE``; VALUE is read as JSON when possible, else kept as a string."""
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lineweaver",
        description="Reformat multi-line text into a single line for chat boxes and shells.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        type=Path,
        default=None,
        help="Input file (default: read from stdin)",
    )
    parser.add_argument(
        "--mode",
        "-m",
        choices=[m.value for m in Mode],
        default=Mode.SIMPLE.value,
        help="Processing mode (default: simple)",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default=None,
        help="Start from a named option preset",
    )
    parser.add_argument(
        "--shell",
        choices=["powershell", "posix"],
        default=None,
        help="Escape dialect for terminal mode",
    )
    parser.add_argument(
        "--option",
        "-o",
        action="append",
        type=_parse_option,
        default=[],
        metavar="KEY=VALUE",
        help="Processing option, repeatable (e.g. -o paragraph_separator='[P]')",
    )
    parser.add_argument("--encoding", default="utf-8", help="Input file encoding (default: utf-8)")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--stats", action="store_true", help="Print statistics and diagnostics to stderr")
    parser.add_argument("--classify", action="store_true", help="Only print the detected context")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Increase log verbosity")
    return parser


def _read_input(args: argparse.Namespace) -> str:
    if args.file is None:
        return sys.stdin.read()
    return args.file.read_text(encoding=args.encoding)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level={0: "WARNING", 1: "INFO"}.get(args.verbose, "DEBUG"))

    try:
        text = _read_input(args)
    except (OSError, UnicodeDecodeError) as e:
        print(f"lineweaver: cannot read input: {e}", file=sys.stderr)
        return 2

    if args.classify:
        context = classify(text)
        print(json.dumps({
            "type": context.type.value,
            "confidence": context.confidence,
            "features": list(context.features),
            "shell_intent": context.shell_intent,
        }, indent=2))
        return 0

    # preset first, then -o overrides, then --shell
    options: dict[str, Any] = dict(PRESETS[args.preset]) if args.preset else {}
    options.update(args.option)
    if args.shell:
        options["shell"] = args.shell
    result = process(text, args.mode, options)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif result.text is not None:
        print(result.text)

    if args.stats or result.outcome is not Outcome.SUCCESS:
        if args.stats:
            print(
                f"{result.original_length} -> {result.processed_length} chars "
                f"({result.compression_ratio:.1f}% smaller), context: "
                f"{result.context.type.value if result.context else 'n/a'}",
                file=sys.stderr,
            )
        for issue in result.issues:
            line = f"{issue.severity.value}: {issue.message}"
            if issue.suggestion:
                line += f" ({issue.suggestion})"
            print(line, file=sys.stderr)

    return 0 if result.outcome is Outcome.SUCCESS else 1


if __name__ == "__main__":
    sys.exit(main())
