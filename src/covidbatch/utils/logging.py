"""
Structured logging for batch runs.

Log events go to stderr so they never interleave with the run summary the
CLI prints to stdout. Events emitted inside ``log_context`` carry the job
name, run id and step they belong to.
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog for a job run.

    Args:
        level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit one JSON object per line instead of console text,
            for scheduled runs whose output is collected by a log shipper.
        stream: Destination; defaults to stderr.
    """
    out = stream or sys.stderr
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=out.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Module logger; bound lazily, so it follows later configure_logging calls."""
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind run identifiers to every event logged inside the block.

    Example:
        with log_context(job="nytimes", run_id="1584316800000"):
            log.info("Job started")
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
