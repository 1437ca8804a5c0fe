from __future__ import annotations

from pathlib import Path

from flask import Blueprint, current_app, jsonify, session

from flowguard import ConfigurationError, SourceReadError

bp = Blueprint("analyze", __name__, url_prefix="/")


@bp.route("/analyze", methods=["POST"])
def analyze():
    """
    Run detection on the last uploaded flow log:
      - normalizes, windows and scores the records
      - persists the result JSON (used later by /report/generate)
      - returns the summary, ranked flagged windows and statistics

    Expects `session["uploaded_file"]` to point to a file saved by /upload.
    """
    path_str = session.get("uploaded_file")
    if not path_str:
        return jsonify({"success": False, "error": "No file uploaded"}), 400

    log_path = Path(path_str)
    if not log_path.exists():
        return jsonify({"success": False, "error": "Uploaded file not found"}), 400

    manager = current_app.extensions["analysis_mgr"]
    try:
        payload = manager.run(log_path)
    except ConfigurationError as e:
        current_app.logger.exception("Invalid detection config")
        return jsonify({"success": False, "error": f"Configuration error: {e}"}), 500
    except SourceReadError as e:
        current_app.logger.warning("Unreadable upload: %s", e)
        return jsonify({"success": False, "error": str(e)}), 422

    return jsonify({"success": True, "analysis": payload})


@bp.route("/analysis/latest", methods=["GET"])
def latest():
    """Snapshot of the most recent analysis (empty results before the first run)."""
    manager = current_app.extensions["analysis_mgr"]
    return jsonify({"success": True, **manager.snapshot()})
