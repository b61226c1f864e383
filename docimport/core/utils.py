"""Shared utility functions for the document import service."""

import logging
from datetime import UTC, datetime
from pathlib import Path

import colorlog

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Get a logger with a colorized format for the service.

    Child loggers (``doc-import.worker``) propagate to their namespace logger (``doc-import``), which owns the
    handlers. The thread name is part of every line so that concurrent worker runs can be told apart.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    namespace = name.split(".", 1)[0]
    if namespace != name:
        get_logger(namespace)
        return logger
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def ensure_dir(path: str | Path) -> None:
    """Ensure a directory exists (like mkdir -p)."""
    Path(path).mkdir(parents=True, exist_ok=True)


def utcnow_iso() -> str:
    """Get the current UTC time as an ISO8601 string."""
    return datetime.now(UTC).isoformat()


def utcnow_millis() -> int:
    """Get the current UTC time as milliseconds since the epoch."""
    return int(datetime.now(UTC).timestamp() * 1000)
