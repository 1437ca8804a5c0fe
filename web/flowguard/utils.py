"""
Utility helpers: directory setup, logging config and time utils.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _reset(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # avoid duplicate logs if root has handlers
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    return logger


def ensure_dirs(*paths: Path) -> None:
    """Ensure each directory exists."""
    for p in paths:
        Path(p).mkdir(parents=True, exist_ok=True)


def init_logging(
    name: str = "flowguard",
    level: str = "INFO",
    log_file: Optional[Path] = None,
    *,
    also: Iterable[str] = (),
) -> logging.Logger:
    """
    Configure a console logger + optional rotating file handler.

    Loggers named in `also` get the same handlers, so one file is written by
    one handler. Calling it again replaces the handlers installed by the
    previous call.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logger = _reset(name, log_level)

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(ch)

    # File (rotating)
    if log_file is not None:
        log_file = Path(log_file)
        ensure_dirs(log_file.parent)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(fh)

    for other in also:
        shared = _reset(other, log_level)
        for h in logger.handlers:
            shared.addHandler(h)

    return logger


def utcnow_iso() -> str:
    """Return current UTC timestamp in RFC3339-ish ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def timestamp_slug() -> str:
    """Filesystem-friendly local timestamp, unique down to the microsecond."""
    return datetime.now().strftime("%Y%m%d_%H%M%S_%f")
