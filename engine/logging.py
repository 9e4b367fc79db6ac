"""
Logging configuration for the maidr engine.

Two destinations:

  - File: always DEBUG, one file per process under ``<data_dir>/logs/``
  - Console: DEBUG if verbose, WARNING+ otherwise
  - Format: "timestamp | level | name | run_id | message"
  - Config ``console_format`` options:
    - "full"   (default): same structured format as the file handler
    - "simple": bare messages for DEBUG/INFO, [LEVEL] prefix for WARNING+
    - "clean":  no console output at all (file logging still active)

Records may carry ``extra=tagged("layer")`` so tools reading the log can
filter by category.  Records with ``extra={'skip_file': True}`` are
dropped by both handlers.

Modules under ``rendering/`` log through ``logging.getLogger("maidr")``
directly so that package never imports the engine.
"""

from __future__ import annotations

import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import get_data_dir

LOGGER_NAME = "maidr"


def tagged(tag: str) -> dict:
    """Return ``extra`` dict for logger calls: ``logger.debug("...", extra=tagged("x"))``."""
    return {"log_tag": tag}


_run_filter: Optional["_RunFilter"] = None
# one value per thread and per asyncio task
_run_id: ContextVar[str] = ContextVar("maidr_run_id", default="")
_current_log_file: Optional[Path] = None


class _RunFilter(logging.Filter):
    """Injects the current run_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get() or "-"
        if not hasattr(record, "log_tag"):
            record.log_tag = ""
        return True


class _SkipFilter(logging.Filter):
    """Drops records marked with ``extra={'skip_file': True}``."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not getattr(record, "skip_file", False)


class _ConsoleFormatter(logging.Formatter):
    """Shows a [LEVEL] prefix only for WARNING and above."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return f"  [{record.levelname}] {record.getMessage()}"
        return f"  {record.getMessage()}"


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the engine logger.

    Args:
        verbose: If True, show DEBUG level on console; otherwise WARNING+

    Returns:
        Configured logger instance
    """
    global _run_filter, _current_log_file
    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if _run_filter is None:
        _run_filter = _RunFilter()
    if _run_filter not in logger.filters:
        logger.addFilter(_run_filter)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"maidr_{timestamp}.log"
    _current_log_file = log_file
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(_SkipFilter())
    # Filters on the logger do not run for records from child loggers
    # (maidr.*), so the handler injects run_id as well.
    file_handler.addFilter(_run_filter)
    file_format = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(run_id)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    import config as _config
    console_format = _config.get("console_format", "full")

    if console_format != "clean":
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.addFilter(_SkipFilter())
        console_handler.addFilter(_run_filter)
        console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
        if console_format == "simple":
            console_handler.setFormatter(_ConsoleFormatter())
        else:
            console_handler.setFormatter(file_format)
        logger.addHandler(console_handler)

    logger.debug(f"Log file: {log_file}")
    return logger


def get_logger() -> logging.Logger:
    """Get the engine logger, configuring it with defaults on first use."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        return setup_logging(verbose=False)
    return logger


def set_run_id(run_id: str) -> None:
    """Set the run ID included in subsequent log lines from the calling thread or task."""
    _run_id.set(run_id)


def get_current_log_path() -> Optional[Path]:
    return _current_log_file


def log_error(
    message: str,
    exc: Optional[BaseException] = None,
    context: Optional[dict] = None,
) -> None:
    """Log an error with full details including stack trace.

    Args:
        message: Error description
        exc: Optional exception to include stack trace from
        context: Optional dict of additional context (layer index, geom, etc.)
    """
    logger = get_logger()
    lines = [message]
    if context:
        lines.append("Context:")
        for key, value in context.items():
            lines.append(f"  {key}: {value}")
    if exc is not None:
        lines.append(f"Exception type: {type(exc).__name__}")
        lines.append(f"Exception message: {exc}")
        lines.append("Stack trace:")
        lines.append("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    logger.error("\n".join(lines), extra=tagged("error"))


def log_layer_event(event: str, layer_index: int, kind: str, details: Optional[str] = None) -> None:
    """Log a per-layer processing event.

    Args:
        event: Event name (detected, degraded, reordered, processed, ...)
        layer_index: 0-based index of the layer in its plot
        kind: Geometry kind value
        details: Optional free text
    """
    msg = f"Layer {layer_index} ({kind}) {event}"
    if details:
        msg += f" - {details}"
    get_logger().debug(msg, extra=tagged("layer"))
