"""The ``process`` entry point and its result type.

Every failure is returned as data on the :class:`ProcessingResult`; nothing
raises across :func:`process` or :func:`aprocess`.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import queue
from collections.abc import Mapping
from typing import Any

import structlog

from lineweaver.cache import ResultCache, cache_key
from lineweaver.chunking import (
    CancellationToken,
    ChunkProgress,
    aprocess_chunks,
    process_chunks,
    split_chunks,
)
from lineweaver.classifier import ProcessingContext, classify
from lineweaver.config import ProcessingConfig
from lineweaver.errors import ConfigurationError, InputError, ProcessingCancelled, TransformFailure
from lineweaver.protector import protect, restore
from lineweaver.stats import TextStats, compression_ratio, get_stats
from lineweaver.strategies import Mode, Strategy, get_strategy
from lineweaver.validator import Severity, ValidationIssue, validate

logger = structlog.get_logger(__name__)

# Absolute cap; larger inputs are rejected before any transform runs.
HARD_INPUT_LIMIT = 1_000_000


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"          # transform raised; text is the unmodified input
    REJECTED = "rejected"      # input error; no text
    CANCELLED = "cancelled"    # chunked run cancelled; no text


@dataclasses.dataclass(frozen=True, slots=True)
class ProcessingResult:
    """Transformed text plus statistics and diagnostics."""

    text: str | None
    mode: Mode
    original_length: int
    processed_length: int
    compression_ratio: float                # percentage of characters removed
    issues: tuple[ValidationIssue, ...]
    context: ProcessingContext | None
    original_stats: TextStats
    processed_stats: TextStats
    outcome: Outcome = Outcome.SUCCESS
    chunked: bool = False
    timestamp: str = ""

    @property
    def is_valid(self) -> bool:
        return all(issue.severity is not Severity.ERROR for issue in self.issues)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view (enums flattened to their values)."""
        data = dataclasses.asdict(self)
        data["mode"] = self.mode.value
        data["outcome"] = self.outcome.value
        data["issues"] = [
            {**dataclasses.asdict(issue), "severity": issue.severity.value} for issue in self.issues
        ]
        if self.context is not None:
            data["context"]["type"] = self.context.type.value
        data["is_valid"] = self.is_valid
        return data

    def __str__(self) -> str:
        return self.text or ""


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def check_input(text: Any) -> None:
    """Raise :class:`InputError` for non-string, blank or oversized input."""
    if not isinstance(text, str):
        raise InputError(f"Expected text as a string, got {type(text).__name__}", code="input_type")
    if not text.strip():
        raise InputError("Please enter some text to process", code="input_empty")
    if len(text) > HARD_INPUT_LIMIT:
        raise InputError(
            f"Text length {len(text)} exceeds the limit of {HARD_INPUT_LIMIT} characters",
            code="input_too_large",
        )


def _resolve(
    mode: str | Mode,
    config: ProcessingConfig | Mapping[str, Any] | None,
) -> tuple[Strategy, ProcessingConfig, list[ValidationIssue]]:
    """Sanitize configuration and pick the strategy; problems become warnings."""
    warnings: list[ConfigurationError] = []
    try:
        if isinstance(config, ProcessingConfig):
            resolved, warnings = ProcessingConfig.from_options(None, base=config)
        else:
            resolved, warnings = ProcessingConfig.from_options(config)
    except (TypeError, ValueError, OverflowError) as e:
        warnings = [ConfigurationError(f"Unusable configuration ({e}); using defaults", option="config")]
        resolved = ProcessingConfig()

    try:
        strategy = get_strategy(mode)
    except ConfigurationError as e:
        warnings.append(ConfigurationError(f"{e}; falling back to simple", option="mode"))
        strategy = get_strategy(Mode.SIMPLE)

    for warning in warnings:
        logger.warning("config_warning", option=warning.option, message=str(warning))
    issues = [
        ValidationIssue(severity=Severity.WARNING, code=w.code, message=str(w)) for w in warnings
    ]
    return strategy, resolved, issues


def transform(
    text: str,
    strategy: Strategy,
    config: ProcessingConfig,
    context: ProcessingContext,
) -> tuple[str, list[ValidationIssue]]:
    """Run protect -> strategy -> restore -> finalize on *text*."""
    if strategy.uses_protection:
        masked, spans = protect(text, config)
        transformed = restore(strategy.apply(masked, config, context), spans)
    else:
        transformed = strategy.apply(text, config, context)
    return strategy.finalize(transformed, config)


def _rejected(text: Any, mode: Mode, error: InputError, issues: list[ValidationIssue]) -> ProcessingResult:
    logger.warning("processing_rejected", mode=mode.value, reason=error.code)
    original = text if isinstance(text, str) else ""
    empty = get_stats("")
    return ProcessingResult(
        text=None,
        mode=mode,
        original_length=len(original),
        processed_length=0,
        compression_ratio=0.0,
        issues=(ValidationIssue.from_error(error), *issues),
        context=None,
        original_stats=get_stats(original),
        processed_stats=empty,
        outcome=Outcome.REJECTED,
        timestamp=_now(),
    )


def _cancelled(
    text: str,
    mode: Mode,
    context: ProcessingContext | None,
    issues: list[ValidationIssue],
    chunked: bool,
) -> ProcessingResult:
    logger.info("processing_cancelled", mode=mode.value, length=len(text))
    return ProcessingResult(
        text=None,
        mode=mode,
        original_length=len(text),
        processed_length=0,
        compression_ratio=0.0,
        issues=(
            *issues,
            ValidationIssue(severity=Severity.WARNING, code="cancelled", message="Processing was cancelled"),
        ),
        context=context,
        original_stats=get_stats(text),
        processed_stats=get_stats(""),
        outcome=Outcome.CANCELLED,
        chunked=chunked,
        timestamp=_now(),
    )


def _failed(
    text: str,
    mode: Mode,
    context: ProcessingContext | None,
    issues: list[ValidationIssue],
    error: Exception,
) -> ProcessingResult:
    failure = TransformFailure(mode.value, error)
    logger.exception("transform_failed", mode=mode.value, error=str(error))
    return ProcessingResult(
        text=text,
        mode=mode,
        original_length=len(text),
        processed_length=len(text),
        compression_ratio=0.0,
        issues=(
            *issues,
            ValidationIssue(
                severity=Severity.ERROR,
                code=failure.code,
                message=str(failure),
                suggestion="The original text is returned unchanged; try another mode",
            ),
        ),
        context=context,
        original_stats=get_stats(text),
        processed_stats=get_stats(text),
        outcome=Outcome.FAILED,
        timestamp=_now(),
    )


def _succeeded(
    text: str,
    processed: str,
    mode: Mode,
    config: ProcessingConfig,
    context: ProcessingContext,
    issues: list[ValidationIssue],
    chunked: bool,
) -> ProcessingResult:
    issues = [*issues, *validate(processed, config, context)]
    result = ProcessingResult(
        text=processed,
        mode=mode,
        original_length=len(text),
        processed_length=len(processed),
        compression_ratio=compression_ratio(text, processed),
        issues=tuple(issues),
        context=context,
        original_stats=get_stats(text),
        processed_stats=get_stats(processed),
        outcome=Outcome.SUCCESS,
        chunked=chunked,
        timestamp=_now(),
    )
    logger.info(
        "processing_completed",
        mode=mode.value,
        context=context.type.value,
        original_length=result.original_length,
        processed_length=result.processed_length,
        compression=round(result.compression_ratio, 1),
        chunked=chunked,
        issues=len(result.issues),
    )
    return result


def _should_chunk(text: str, strategy: Strategy, config: ProcessingConfig) -> bool:
    return len(text) > config.large_input_threshold and strategy.chunkable(config)


def _from_cache(
    cache: ResultCache,
    key: str,
    mode: Mode,
    config_issues: list[ValidationIssue],
) -> ProcessingResult | None:
    cached = cache.get(key)
    if cached is None:
        return None
    logger.debug("cache_hit", mode=mode.value, key=key)
    # cached entries carry no config warnings; this call's own are prepended
    if config_issues:
        return dataclasses.replace(cached, issues=(*config_issues, *cached.issues))
    return cached


def _store(
    cache: ResultCache,
    key: str,
    result: ProcessingResult,
    config_issues: list[ValidationIssue],
) -> None:
    if config_issues:
        result = dataclasses.replace(result, issues=result.issues[len(config_issues):])
    cache.put(key, result)


def _run(
    text: str,
    strategy: Strategy,
    resolved: ProcessingConfig,
    config_issues: list[ValidationIssue],
    *,
    cache: ResultCache | None,
    cancel: CancellationToken | None,
    progress: queue.Queue[ChunkProgress] | None,
    max_workers: int | None,
) -> ProcessingResult:
    """Process already-validated *text* with a resolved strategy and configuration."""
    key = cache_key(text, strategy.mode.value, resolved) if cache is not None else None
    if cache is not None and key is not None:
        cached = _from_cache(cache, key, strategy.mode, config_issues)
        if cached is not None:
            return cached

    logger.debug("processing_started", mode=strategy.mode.value, length=len(text))
    issues = list(config_issues)
    context: ProcessingContext | None = None
    chunked = False
    try:
        context = classify(text)
        if cancel is not None and cancel.cancelled:
            raise ProcessingCancelled("Processing cancelled before start")

        if _should_chunk(text, strategy, resolved):
            chunked = True
            chunks = split_chunks(text, resolved.chunk_size)
            logger.info("chunked_processing", mode=strategy.mode.value, chunks=len(chunks))
            pieces = process_chunks(
                chunks,
                lambda chunk: transform(chunk, strategy, resolved, context)[0],
                max_workers=max_workers,
                cancel=cancel,
                progress=progress,
            )
            processed = " ".join(piece for piece in pieces if piece)
        else:
            processed, finalize_issues = transform(text, strategy, resolved, context)
            issues.extend(finalize_issues)
    except ProcessingCancelled:
        return _cancelled(text, strategy.mode, context, issues, chunked)
    except Exception as e:  # noqa: BLE001 - a transform must never crash the caller
        return _failed(text, strategy.mode, context, issues, e)

    result = _succeeded(text, processed, strategy.mode, resolved, context, issues, chunked)
    if cache is not None and key is not None:
        _store(cache, key, result, config_issues)
    return result


def process(
    text: str,
    mode: str | Mode = Mode.SIMPLE,
    config: ProcessingConfig | Mapping[str, Any] | None = None,
    *,
    cache: ResultCache | None = None,
    cancel: CancellationToken | None = None,
    progress: queue.Queue[ChunkProgress] | None = None,
    max_workers: int | None = None,
) -> ProcessingResult:
    """Reformat *text* with the selected mode.

    Args:
        text: Raw input text.
        mode: ``simple``, ``smart``, ``terminal`` or ``custom``; unknown
            modes fall back to ``simple`` with a warning.
        config: A :class:`ProcessingConfig` or a mapping of options.
        cache: Optional caller-owned result cache.
        cancel: Token checked between chunks of large inputs.
        progress: Queue receiving :class:`ChunkProgress` messages.
        max_workers: Thread pool size for chunked processing.

    Returns:
        A :class:`ProcessingResult`; never raises.
    """
    strategy, resolved, issues = _resolve(mode, config)
    try:
        check_input(text)
    except InputError as e:
        return _rejected(text, strategy.mode, e, issues)

    return _run(
        text, strategy, resolved, issues,
        cache=cache, cancel=cancel, progress=progress, max_workers=max_workers,
    )


async def aprocess(
    text: str,
    mode: str | Mode = Mode.SIMPLE,
    config: ProcessingConfig | Mapping[str, Any] | None = None,
    *,
    cache: ResultCache | None = None,
    cancel: CancellationToken | None = None,
    progress: Any = None,
) -> ProcessingResult:
    """Async variant of :func:`process`.

    Large chunkable inputs are processed chunk by chunk with a cooperative
    yield to the event loop between chunks; everything else runs inline.
    """
    strategy, resolved, issues = _resolve(mode, config)
    try:
        check_input(text)
    except InputError as e:
        return _rejected(text, strategy.mode, e, issues)

    if not _should_chunk(text, strategy, resolved):
        return _run(
            text, strategy, resolved, issues,
            cache=cache, cancel=cancel, progress=progress, max_workers=None,
        )

    key = cache_key(text, strategy.mode.value, resolved) if cache is not None else None
    if cache is not None and key is not None:
        cached = _from_cache(cache, key, strategy.mode, issues)
        if cached is not None:
            return cached

    context = classify(text)
    chunks = split_chunks(text, resolved.chunk_size)
    logger.info("chunked_processing", mode=strategy.mode.value, chunks=len(chunks), asynchronous=True)
    try:
        pieces = await aprocess_chunks(
            chunks,
            lambda chunk: transform(chunk, strategy, resolved, context)[0],
            cancel=cancel,
            progress=progress,
        )
    except ProcessingCancelled:
        return _cancelled(text, strategy.mode, context, issues, True)
    except Exception as e:  # noqa: BLE001
        return _failed(text, strategy.mode, context, issues, e)

    processed = " ".join(piece for piece in pieces if piece)
    result = _succeeded(text, processed, strategy.mode, resolved, context, issues, True)
    if cache is not None and key is not None:
        _store(cache, key, result, issues)
    return result
