"""Centralized logging configuration for sqllibrarian.

All loggers live under the ``sqllibrarian`` namespace. Trace output
(prepare, execute, lookup and cache events) is emitted at DEBUG level and
can be switched on with :func:`enable_trace` or the ``SQLLIBRARIAN_TRACE``
environment variable.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import msgspec

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "StructuredFormatter",
    "configure_logging",
    "enable_trace",
    "get_logger",
)

ROOT_LOGGER_NAME = "sqllibrarian"
TRACE_FORMAT = "%(name)s: %(message)s"

_json_encoder = msgspec.json.Encoder()


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter."""

    def format(self, record: LogRecord) -> str:
        """Format log record as structured JSON.

        Args:
            record: The log record to format

        Returns:
            JSON formatted log entry
        """
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)  # pyright: ignore

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return _json_encoder.encode(log_entry).decode()


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance under the sqllibrarian namespace.

    Args:
        name: Logger name. If not provided, returns the root sqllibrarian logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Configure logging for the whole library.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: Log format style ("structured" for JSON, "simple" for text)
        log_to_file: Optional file path to log to
        extra_handlers: Additional handlers to add
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    if format_style == "structured":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    if extra_handlers:
        for handler in extra_handlers:
            root_logger.addHandler(handler)

    root_logger.propagate = False


def enable_trace() -> None:
    """Turn on trace output on stderr.

    Idempotent: the trace handler is attached only once.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)
    if any(getattr(handler, "_sqllibrarian_trace", False) for handler in root_logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(TRACE_FORMAT))
    handler._sqllibrarian_trace = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
