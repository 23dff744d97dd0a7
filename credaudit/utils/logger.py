"""Structured logging for credaudit.

Every module logs key/value events through structlog. An audit run binds its
ULID with ``set_run_id()``; ``add_run_id`` copies it onto each event emitted
while the run is active, so one grep on ``run_id`` returns a whole run.

Events go to stderr. stdout is reserved for the CLI run summary.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


def add_run_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add run_id to the event when an audit run is active."""
    run_id = run_id_var.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """(Re)configure structlog for the process.

    Args:
        log_level:   DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: JSON lines when True, coloured console output otherwise.
        stream:      Destination, stderr by default.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_run_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "credaudit") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class PerformanceLogger:
    """Times one phase of an audit run ("Index build", "Scan").

    Logs ``"<phase> completed"`` at info, or ``"<phase> failed"`` at error when
    the block raises. Extra keyword fields are attached to either event. The
    exception is never suppressed.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        **fields: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.fields = fields
        self._started = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        elapsed_ms = round((time.perf_counter() - self._started) * 1000, 3)
        if exc_type is None:
            self.logger.info(
                f"{self.operation} completed", duration_ms=elapsed_ms, **self.fields
            )
            return
        self.logger.error(
            f"{self.operation} failed",
            duration_ms=elapsed_ms,
            error=str(exc_val),
            error_type=exc_type.__name__,
            **self.fields,
        )


def set_run_id(run_id: str) -> None:
    run_id_var.set(run_id)


def clear_run_id() -> None:
    run_id_var.set(None)


configure_logging()
