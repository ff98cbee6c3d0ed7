"""Error taxonomy for the reformatting engine.

These exceptions are raised inside the engine and converted into
:class:`~lineweaver.validator.ValidationIssue` data at the ``process``
boundary; callers of :func:`lineweaver.process` never see them.
"""

from __future__ import annotations


class LineWeaverError(Exception):
    """Base class for all engine errors."""

    code = "error"


class InputError(LineWeaverError):
    """The input text cannot be processed (empty or above the hard cap)."""

    def __init__(self, message: str, *, code: str = "input_invalid") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(LineWeaverError):
    """An option is out of range, mistyped, unknown or conflicts with another."""

    code = "config"

    def __init__(self, message: str, *, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option


class ProcessingCancelled(LineWeaverError):
    """A cancellation token fired before every chunk finished."""

    code = "cancelled"


class TransformFailure(LineWeaverError):
    """A strategy raised while transforming text."""

    code = "transform_failed"

    def __init__(self, mode: str, cause: BaseException) -> None:
        super().__init__(f"{mode} transform failed: {cause}")
        self.mode = mode
        self.cause = cause
