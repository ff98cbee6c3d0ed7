"""LineWeaver - Reformat multi-line text for single-line inputs such as chat boxes and shells."""

from lineweaver.cache import ResultCache
from lineweaver.chunking import CancellationToken, ChunkProgress
from lineweaver.classifier import ContextType, ProcessingContext, classify
from lineweaver.config import PRESETS, CompressionLevel, ProcessingConfig, WhitespacePolicy
from lineweaver.engine import Outcome, ProcessingResult, aprocess, process
from lineweaver.errors import (
    ConfigurationError,
    InputError,
    LineWeaverError,
    ProcessingCancelled,
    TransformFailure,
)
from lineweaver.protector import ProtectedSpan, protect, restore
from lineweaver.stats import TextStats, get_stats
from lineweaver.strategies import Mode
from lineweaver.validator import Severity, ValidationIssue, validate

__version__ = "1.0.0"

__all__ = [
    "process",
    "aprocess",
    "classify",
    "validate",
    "get_stats",
    "protect",
    "restore",
    "Mode",
    "Outcome",
    "ProcessingConfig",
    "ProcessingContext",
    "ProcessingResult",
    "ProtectedSpan",
    "ValidationIssue",
    "Severity",
    "ContextType",
    "CompressionLevel",
    "WhitespacePolicy",
    "TextStats",
    "ResultCache",
    "CancellationToken",
    "ChunkProgress",
    "PRESETS",
    "LineWeaverError",
    "InputError",
    "ConfigurationError",
    "ProcessingCancelled",
    "TransformFailure",
]
