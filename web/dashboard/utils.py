"""
Utility helpers for the web app: logging config and simple validators.
"""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask

from flowguard.utils import ensure_dirs, init_logging as _init_named_logging

__all__ = ["allowed_file", "ensure_dirs", "init_logging"]


def init_logging(app: Flask) -> logging.Logger:
    """Configure console + rotating file logging for the app and the engine."""
    logger = _init_named_logging(
        "dashboard",
        app.config["LOG_LEVEL"],
        Path(app.config["LOG_FILE"]),
        also=("flowguard",),
    )

    if app.config["SECRET_KEY"] == "dev-unsafe-change-this":
        logger.warning("Using default SECRET_KEY. Set FLASK_SECRET_KEY for production.")

    return logger


def allowed_file(filename: str, allowed: set[str]) -> bool:
    """Return True if the filename has an allowed extension."""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed
