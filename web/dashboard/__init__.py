"""
Flask app factory for the flowguard dashboard.

The app is JSON-only: upload a flow log, analyze it, then render and download
a PDF of the latest result. One AnalysisManager per app lives in
`app.extensions["analysis_mgr"]`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Type

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from dashboard.config import Config, DevelopmentConfig, ProductionConfig
from dashboard.managers.analysis_manager import AnalysisManager
from dashboard.routes import analyze as analyze_bp
from dashboard.routes import report as report_bp
from dashboard.routes import upload as upload_bp
from dashboard.utils import ensure_dirs, init_logging

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


def _pick_config(config_class: Type[Config] | None) -> Type[Config]:
    if config_class is not None:
        return config_class
    if os.getenv("FLASK_ENV", "production").lower().startswith("dev"):
        return DevelopmentConfig
    return ProductionConfig


def _error(status: int, message: str):
    return jsonify({"success": False, "error": message}), status


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        limit_mib = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return _error(413, f"File too large (limit {limit_mib} MiB)")

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return _error(e.code or 500, e.description)

    @app.errorhandler(Exception)
    def unexpected(_e: Exception):
        app.logger.exception("Unhandled error")
        return _error(500, "Internal server error")


def create_app(config_class: Type[Config] | None = None) -> Flask:
    """Build the dashboard app; `config_class` overrides the FLASK_ENV choice."""
    app = Flask(__name__)
    app.config.from_object(_pick_config(config_class))
    app.secret_key = app.config["SECRET_KEY"]

    log_dir = Path(app.config["LOG_FOLDER"])
    manager = AnalysisManager(
        log_dir=log_dir,
        detection_config_path=Path(app.config["DETECTION_CONFIG"]) if app.config.get("DETECTION_CONFIG") else None,
        stream_threshold_bytes=int(app.config["STREAM_THRESHOLD_BYTES"]),
    )
    ensure_dirs(Path(app.config["UPLOAD_FOLDER"]), log_dir, manager.analyses_dir, manager.reports_dir)

    app.logger = init_logging(app)
    app.extensions["analysis_mgr"] = manager

    @app.after_request
    def add_security_headers(resp):
        resp.headers.update(SECURITY_HEADERS)
        return resp

    _register_error_handlers(app)

    for module in (upload_bp, analyze_bp, report_bp):
        app.register_blueprint(module.bp)

    @app.route("/healthz")
    def healthz():
        snap = manager.snapshot()
        return jsonify({"status": "ok", "last_run_at": snap["last_run_at"]}), 200

    app.logger.info("Dashboard ready (uploads: %s, logs: %s)", app.config["UPLOAD_FOLDER"], log_dir)
    return app
