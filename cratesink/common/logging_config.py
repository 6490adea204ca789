"""
Structured logging for the sink.

Records are rendered as JSON lines and carry the table whose batch is
being processed, so that lines from interleaved tables can be told apart
by a log aggregator.
"""

import logging
import json
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional
from datetime import datetime, timezone

# Table whose batch or catalog is being processed
table_ctx: ContextVar[Optional[str]] = ContextVar(
    "table", default=None)


def _context_fields(**fields: Any) -> Dict[str, Any]:
    """Structured fields with the current table added."""
    table = table_ctx.get()
    if table:
        fields["table"] = table
    return fields


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_context_fields())

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # set by StructuredLogger and PerformanceTracker
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Logger accepting keyword fields, e.g.

        slogger.info("Loaded schema from catalog", columns=12)
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, msg: str, **kwargs):
        if self.logger.isEnabledFor(level):
            # stacklevel points module/line at the caller of debug()/info()
            self.logger.log(level, msg, extra={"extra_fields": _context_fields(**kwargs)}, stacklevel=3)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)


class PerformanceTracker:
    """
    Context manager that logs the duration of an operation.

    Usage:
        with PerformanceTracker("process_batch", logger, documents=10):
            ...
    """

    def __init__(
        self,
        operation: str,
        logger: logging.Logger,
        log_level: int = logging.INFO,
        **extra_fields,
    ):
        self.operation = operation
        self.logger = logger
        self.log_level = log_level
        self.extra_fields = extra_fields
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(
            f"Starting operation: {self.operation}",
            extra={"extra_fields": _context_fields(operation=self.operation, **self.extra_fields)},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        fields = _context_fields(
            operation=self.operation,
            duration_ms=round(self.duration_ms, 2),
            **self.extra_fields,
        )

        if exc_type:
            fields.update(error=str(exc_val), error_type=exc_type.__name__)
            self.logger.error(f"Operation failed: {self.operation}", extra={"extra_fields": fields})
        else:
            self.logger.log(self.log_level, f"Operation completed: {self.operation}", extra={"extra_fields": fields})


def setup_logging(log_level: Optional[str] = None, json_format: Optional[bool] = None):
    """
    Configure the root logger.

    Args:
        log_level: Log level name; defaults to the configured level
        json_format: JSON lines if True, plain text if False; defaults to
            the configured format
    """
    from cratesink.config.settings import get_settings

    settings = get_settings()
    level = getattr(logging, (log_level or settings.log_level).upper())
    if json_format is None:
        json_format = settings.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    if json_format:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
    root_logger.addHandler(console_handler)

    # SQLAlchemy engine logs every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@contextmanager
def table_context(table: Optional[str]) -> Iterator[Optional[str]]:
    """
    Attach a table to every record logged inside the block.

    The previous table is restored on exit, so blocks may nest.
    """
    token = table_ctx.set(table)
    try:
        yield table
    finally:
        table_ctx.reset(token)


def get_table() -> Optional[str]:
    """Get the table being processed from context."""
    return table_ctx.get()


def clear_table():
    """Clear the table from context."""
    table_ctx.set(None)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get a StructuredLogger wrapping the named logger."""
    return StructuredLogger(logging.getLogger(name))
