#!/usr/bin/env python3
"""
Benchmark suite for LineWeaver.

Measures compression ratio, character savings and timing for every mode
across the corpus files, optionally including the chunked large-input path.

Usage:
    python benchmarks/run_benchmark.py                  # basic run
    python benchmarks/run_benchmark.py --shell posix    # posix escape dialect
    python benchmarks/run_benchmark.py --scale 200      # repeat each file 200x to exercise chunking
    python benchmarks/run_benchmark.py --output results.json  # save to file
    python benchmarks/run_benchmark.py --iterations 20  # average over 20 runs
"""

from __future__ import annotations

import argparse
import datetime
import json
import platform
import statistics
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

# Ensure the src package is importable when running from repo root.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT / "src"))

from lineweaver import Mode, ProcessingConfig, classify, process  # noqa: E402


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ModeResult:
    """Benchmark result for a single (file, mode) combination."""

    mode: str
    original_chars: int
    processed_chars: int
    compression_pct: float
    chunked: bool
    issues: int
    mean_time_ms: float
    median_time_ms: float
    min_time_ms: float
    max_time_ms: float


@dataclass(slots=True)
class FileResult:
    """Benchmark results for a single corpus file across all modes."""

    filename: str
    original_chars: int
    context: str
    modes: list[ModeResult] = field(default_factory=list)


@dataclass(slots=True)
class BenchmarkReport:
    """Full benchmark report."""

    timestamp: str
    python_version: str
    platform: str
    iterations: int
    shell: str
    scale: int
    files: list[FileResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_SEP = "-" * 92
_HEADER_FMT = "  {:<10s} {:>10s} {:>10s} {:>8s} {:>7s} {:>7s} {:>10s} {:>10s}"
_ROW_FMT = "  {:<10s} {:>10,d} {:>10,d} {:>7.1f}% {:>7s} {:>7d} {:>9.2f}ms {:>9.2f}ms"


def _print_table_header() -> None:
    print(_HEADER_FMT.format(
        "Mode", "Orig", "Proc", "Saved", "Chunked", "Issues", "Mean(ms)", "Med(ms)"
    ))


def _print_table_row(r: ModeResult) -> None:
    print(_ROW_FMT.format(
        r.mode,
        r.original_chars,
        r.processed_chars,
        r.compression_pct,
        "yes" if r.chunked else "no",
        r.issues,
        r.mean_time_ms,
        r.median_time_ms,
    ))


# ---------------------------------------------------------------------------
# Core benchmark logic
# ---------------------------------------------------------------------------


def benchmark_text(
    text: str,
    config: ProcessingConfig,
    *,
    iterations: int = 10,
) -> list[ModeResult]:
    """Run every mode over *text* and return results."""
    results: list[ModeResult] = []

    for mode in Mode:
        timings: list[float] = []
        result = None

        for _ in range(iterations):
            t0 = time.perf_counter()
            result = process(text, mode, config)
            t1 = time.perf_counter()
            timings.append((t1 - t0) * 1000)  # ms

        assert result is not None
        results.append(ModeResult(
            mode=mode.value,
            original_chars=result.original_length,
            processed_chars=result.processed_length,
            compression_pct=result.compression_ratio,
            chunked=result.chunked,
            issues=len(result.issues),
            mean_time_ms=statistics.mean(timings),
            median_time_ms=statistics.median(timings),
            min_time_ms=min(timings),
            max_time_ms=max(timings),
        ))

    return results


def run_benchmark(
    corpus_dir: Path,
    *,
    iterations: int = 10,
    shell: str = "powershell",
    scale: int = 1,
    output_path: Path | None = None,
) -> BenchmarkReport:
    """Run the full benchmark over all corpus files."""
    config, warnings = ProcessingConfig.from_options({"shell": shell})
    for warning in warnings:
        print(f"Warning: {warning}")

    report = BenchmarkReport(
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        python_version=platform.python_version(),
        platform=platform.platform(),
        iterations=iterations,
        shell=config.shell,
        scale=scale,
    )

    corpus_files = sorted(corpus_dir.glob("*.txt"))
    if not corpus_files:
        print(f"No .txt files found in {corpus_dir}")
        sys.exit(1)

    print("\nLineWeaver benchmark")
    print(f"Python {platform.python_version()} on {platform.platform()}")
    print(f"Iterations per mode: {iterations}")
    print(f"Shell dialect: {config.shell}")
    if scale > 1:
        print(f"Scale: each file repeated {scale}x")
    print(_SEP)

    for fp in corpus_files:
        text = "\n\n".join([fp.read_text(encoding="utf-8")] * scale)
        context = classify(text)

        print(f"\n  File: {fp.name} ({len(text):,d} chars, context: {context.type.value})")
        _print_table_header()

        mode_results = benchmark_text(text, config, iterations=iterations)
        report.files.append(FileResult(
            filename=fp.name,
            original_chars=len(text),
            context=context.type.value,
            modes=mode_results,
        ))

        for mr in mode_results:
            _print_table_row(mr)

    # Summary across all files
    print(f"\n{_SEP}")
    print("  AGGREGATE SUMMARY")
    print(_SEP)
    _print_table_header()

    all_orig = sum(fr.original_chars for fr in report.files)
    for mode in Mode:
        rows = [mr for fr in report.files for mr in fr.modes if mr.mode == mode.value]
        all_proc = sum(mr.processed_chars for mr in rows)
        _print_table_row(ModeResult(
            mode=mode.value,
            original_chars=all_orig,
            processed_chars=all_proc,
            compression_pct=(all_orig - all_proc) / all_orig * 100 if all_orig else 0.0,
            chunked=any(mr.chunked for mr in rows),
            issues=sum(mr.issues for mr in rows),
            mean_time_ms=statistics.mean(mr.mean_time_ms for mr in rows),
            median_time_ms=statistics.median(mr.median_time_ms for mr in rows),
            min_time_ms=0.0,
            max_time_ms=0.0,
        ))

    print()

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
        print(f"  Results saved to {output_path}")
        print()

    return report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark suite for LineWeaver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--corpus",
        type=Path,
        default=Path(__file__).resolve().parent / "corpus",
        help="Directory with .txt corpus files (default: benchmarks/corpus/)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=10,
        help="Number of iterations per (file, mode) to average timing (default: 10)",
    )
    parser.add_argument(
        "--shell",
        choices=["powershell", "posix"],
        default="powershell",
        help="Escape dialect used by terminal mode (default: powershell)",
    )
    parser.add_argument(
        "--scale",
        type=int,
        default=1,
        help="Repeat each corpus file N times; large inputs take the chunked path",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Path to save JSON results (e.g. benchmarks/results.json)",
    )
    args = parser.parse_args()

    run_benchmark(
        corpus_dir=args.corpus,
        iterations=args.iterations,
        shell=args.shell,
        scale=max(1, args.scale),
        output_path=args.output,
    )


if __name__ == "__main__":
    main()
