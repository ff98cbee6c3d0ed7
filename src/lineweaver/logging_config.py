"""
Structured logging configuration using structlog.

The library only emits events; entry points (CLI, REST service) call
:func:`setup_logging` once at start-up.
"""

import logging
import sys

import structlog


def _stderr_logger_factory(*args: object) -> structlog.PrintLogger:
    # stdout carries transformed text; sys.stderr is looked up per logger
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(level: str = "WARNING", json_logs: bool = False) -> None:
    """
    Configure structlog.

    Sets up processors for:
    - Context variable merging
    - Log level addition
    - Exception info rendering
    - Timestamp addition
    - JSON or console rendering

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        json_logs: Render JSON lines instead of the console format
    """
    renderer = (
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        if json_logs
        else [structlog.dev.ConsoleRenderer()]
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
