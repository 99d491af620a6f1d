"""Logging setup for command line and report runs."""
from __future__ import annotations

import logging
from collections import Counter
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

from .config import AppConfig
from .models import Diagnostic

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 5


def _has_handler(logger: logging.Logger, kind: type) -> bool:
    # exact type: RotatingFileHandler is itself a StreamHandler
    return any(type(handler) is kind for handler in logger.handlers)


def setup_logging(config: AppConfig, *, console: bool = True) -> logging.Logger:
    """Attach a rotating file handler (and a console handler) to ``multirater``.

    Handlers are added only once per process, so repeated calls just update
    the level. Unknown level names fall back to INFO.
    """

    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("multirater")
    logger.setLevel(level)
    logger.propagate = False

    if not _has_handler(logger, RotatingFileHandler):
        log_path = Path(config.log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    if console and not _has_handler(logger, logging.StreamHandler):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(stream_handler)

    logger.debug("Logging to %s at %s", config.log_path, logging.getLevelName(level))
    return logger


def log_rejections(logger: logging.Logger, diagnostics: Iterable[Diagnostic]) -> Counter:
    """Log one warning per reject reason and return the per-reason counts."""

    counts = Counter(diagnostic.reason.value for diagnostic in diagnostics)
    for reason, count in sorted(counts.items()):
        logger.warning("%d response rows rejected as %s", count, reason)
    return counts


__all__ = ["log_rejections", "setup_logging"]
