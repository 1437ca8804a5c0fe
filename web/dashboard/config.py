"""
Flask settings for the flowguard dashboard.

Every attribute can be overridden through the environment variable of the
same name (FLASK_SECRET_KEY and APP_LOG_* keep their historical names).
"""

from __future__ import annotations
import os

MiB = 1024 * 1024


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_set(name: str, default: str) -> set[str]:
    return {ext.strip().lower() for ext in os.getenv(name, default).split(",") if ext.strip()}


class Config:
    """Defaults shared by every environment."""

    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-unsafe-change-this")

    # Where uploads land and where analyses/reports/app.log are written
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
    LOG_FOLDER = os.getenv("LOG_FOLDER", "logs")

    # Flow logs are large; compressed ones are accepted as-is
    MAX_CONTENT_LENGTH = _env_int("MAX_CONTENT_LENGTH", 64 * MiB)
    ALLOWED_EXTENSIONS = _env_set("ALLOWED_EXTENSIONS", "csv,gz,zst")

    LOG_FILE = os.getenv("APP_LOG_FILE", "logs/app.log")
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")

    # Detection YAML (built-in defaults when unset) and the size above which
    # uploads are read in batches instead of all at once
    DETECTION_CONFIG = os.getenv("DETECTION_CONFIG")
    STREAM_THRESHOLD_BYTES = _env_int("STREAM_THRESHOLD_BYTES", 8 * MiB)


class ProductionConfig(Config):
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "DEBUG")
    STREAM_THRESHOLD_BYTES = _env_int("STREAM_THRESHOLD_BYTES", 1 * MiB)
