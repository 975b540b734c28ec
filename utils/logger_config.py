"""
Queue-based logging setup for the API process.

Log records are pushed onto a queue by a QueueHandler and written to stdout
by a QueueListener thread, so request handlers never block on console I/O
while the event loop is serving listings and uploads.

Usage:
    from utils.logger_config import configure_non_blocking_logging

    listener = configure_non_blocking_logging()   # once, at startup
    ...
    stop_logging()                                 # optional, atexit does it too
"""

import atexit
import logging
import logging.handlers
import os
import queue
import sys
from typing import Optional

_log_listener: Optional[logging.handlers.QueueListener] = None

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# SDK loggers that log every HTTP round trip at INFO/DEBUG
NOISY_LOGGERS = (
    "httpcore",
    "httpx",
    "asyncio",
    "urllib3",
    "google.auth",
    "google.auth.transport",
    "google.cloud.storage",
    "google.resumable_media",
    "PIL",
    "multipart",
    "python_multipart",
)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(value: str | int | None) -> int:
    """Level from a name ("debug"), a number ("10") or None (INFO)."""
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value

    stripped = value.strip().upper()
    if stripped in _LEVELS:
        return _LEVELS[stripped]
    try:
        return int(stripped)
    except ValueError:
        return logging.INFO


def configure_non_blocking_logging(
    level: str | int | None = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    queue_size: int = -1,
    silence_noisy_libs: bool = True,
) -> logging.handlers.QueueListener:
    """
    Route the root logger through a queue drained by a background thread.

    Args:
        level: Log level name or number (default: LOG_LEVEL env var, else INFO)
        log_format: Format string for log messages
        date_format: Format string for timestamps
        queue_size: Max queued records (-1 for unbounded)
        silence_noisy_libs: Raise SDK loggers to WARNING

    Returns:
        The started QueueListener
    """
    global _log_listener

    if _log_listener is not None:
        stop_logging()

    resolved = resolve_log_level(level if level is not None else os.getenv("LOG_LEVEL"))

    log_queue: queue.Queue = queue.Queue(queue_size)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved)
    console_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))

    listener = logging.handlers.QueueListener(log_queue, console_handler, respect_handler_level=True)
    listener.start()

    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(resolved)

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()
    root.addHandler(queue_handler)

    if silence_noisy_libs:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    atexit.register(stop_logging)
    _log_listener = listener
    return listener


def get_log_listener() -> Optional[logging.handlers.QueueListener]:
    return _log_listener


def stop_logging() -> None:
    """Stop the listener thread after flushing queued records."""
    global _log_listener
    if _log_listener is not None:
        listener, _log_listener = _log_listener, None
        listener.stop()
