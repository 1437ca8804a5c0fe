from __future__ import annotations
import json
from pathlib import Path
from flask import Blueprint, current_app, jsonify, send_file, request
from reportlab.platypus.doctemplate import LayoutError
from werkzeug.utils import secure_filename

from flowguard.report import build_pdf
from flowguard.utils import timestamp_slug

bp = Blueprint("report", __name__, url_prefix="/report")


@bp.route("/generate", methods=["POST"])
def generate_report_latest():
    """
    Generate a PDF from the latest persisted analysis JSON.
    Does NOT re-run the analysis. Returns a URL for download.
    """
    manager = current_app.extensions["analysis_mgr"]
    src_path = manager.latest_results_path()
    if src_path is None:
        return jsonify({"success": False, "error": "No analysis result available"}), 400
    if not src_path.exists():
        return jsonify({"success": False, "error": "Latest analysis JSON not found"}), 404

    with src_path.open("r", encoding="utf-8") as f:
        payload = json.load(f)

    out_name = f"report_{timestamp_slug()}.pdf"
    out_path = manager.reports_dir / out_name

    body = request.get_json(silent=True) or {}
    title = body.get("title") or "DDoS Analysis Report"
    landscape = bool(body.get("landscape", True))

    try:
        build_pdf(payload, out_path, title, use_landscape=landscape)
    except (LayoutError, OSError) as e:
        current_app.logger.exception("PDF build failed")
        return jsonify({"success": False, "error": f"PDF generation failed: {e}"}), 500

    url = f"/report/download/{out_name}"
    return jsonify({"success": True, "url": url, "file": out_name})


@bp.route("/download/<path:filename>", methods=["GET"])
def download_report(filename: str):
    """Serve generated PDFs from <LOG_FOLDER>/reports."""
    reports_dir = current_app.extensions["analysis_mgr"].reports_dir.resolve()
    file_path = (reports_dir / filename).resolve()

    current_app.logger.info("Report download requested: %s", file_path)

    # Path traversal / outside-of-reports defense
    if file_path.parent != reports_dir:
        current_app.logger.warning("Illegal report path: %s", file_path)
        return jsonify({"success": False, "error": "Invalid path"}), 400

    if not file_path.exists():
        current_app.logger.warning("Report download missing: %s", file_path)
        return jsonify({"success": False, "error": "Report not found"}), 404

    return send_file(
        str(file_path),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=secure_filename(Path(filename).name),
        conditional=True,
        max_age=0,
    )
