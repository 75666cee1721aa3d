"""
Logging setup for Script Sync.

Every record of the package logger is stamped with the operation it was
emitted under (setup, export, import...), set with operation_scope().
Console output goes through rich on stderr; log files rotate and hold
either plain lines or one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator

from rich.console import Console
from rich.logging import RichHandler


# Log output goes to stderr, command output to stdout
console = Console(stderr=True)

# Package logger
logger = logging.getLogger("script_sync")

NO_OPERATION = "-"
PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(operation)-11s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_operation: ContextVar[str] = ContextVar("script_sync_operation", default=NO_OPERATION)


class OperationFilter(logging.Filter):
    """Stamp records with the current operation name."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation = _operation.get()
        return True


class JsonFormatter(logging.Formatter):
    """JSON lines formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "operation": getattr(record, "operation", NO_OPERATION),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    format_style: str = "rich",
    max_file_size_mb: int = 10,
    backup_count: int = 3,
) -> None:
    """
    Configure the package logger. Safe to call more than once.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        format_style: "rich", "json", or "simple"
        max_file_size_mb: Max log file size before rotation
        backup_count: Number of rotated files to keep
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(log_level)

    handlers = [_console_handler(format_style)]
    if log_file:
        handlers.append(
            _file_handler(Path(log_file), format_style, max_file_size_mb, backup_count)
        )

    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(OperationFilter())
        logger.addHandler(handler)


def _console_handler(format_style: str) -> logging.Handler:
    if format_style == "rich":
        handler: logging.Handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    elif format_style == "json":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(
    path: Path, format_style: str, max_file_size_mb: int, backup_count: int
) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=max_file_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if format_style == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    return handler


@contextmanager
def operation_scope(name: str) -> Generator[None, None, None]:
    """
    Tag every record logged inside the block with an operation name.

    Example:
        with operation_scope("export"):
            engine.export_scripts()
    """
    token = _operation.set(name)
    started = time.perf_counter()
    logger.debug(f"{name} started")
    try:
        yield
    finally:
        logger.debug(f"{name} finished in {time.perf_counter() - started:.2f}s")
        _operation.reset(token)


def current_operation() -> str:
    return _operation.get()


def get_logger(name: str = "script_sync") -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
