"""
Upload route. The file is checked (extension, then existence/magic bytes via
flowguard's source validator) before its path is remembered in the session.
"""

from __future__ import annotations
from pathlib import Path
from flask import Blueprint, current_app, jsonify, request, session
from werkzeug.utils import secure_filename

from dashboard.utils import allowed_file
from flowguard import SourceReadError
from flowguard.intake.validator import check_source
from flowguard.utils import timestamp_slug

bp = Blueprint("upload", __name__, url_prefix="/")


def _reject(status: int, error: str):
    return jsonify({"success": False, "error": error}), status


@bp.route("/upload", methods=["POST"])
def upload_file():
    """Store a CSV flow log (.csv, .csv.gz or .csv.zst) under UPLOAD_FOLDER."""
    file = request.files.get("file")
    if file is None:
        return _reject(400, "No file part")
    if not file.filename:
        return _reject(400, "No selected file")
    if not allowed_file(file.filename, current_app.config["ALLOWED_EXTENSIONS"]):
        return _reject(400, "Invalid file type")

    stored_name = f"{timestamp_slug()}_{secure_filename(file.filename)}"
    dest = Path(current_app.config["UPLOAD_FOLDER"]) / stored_name
    file.save(dest)

    try:
        compressor = check_source(dest)
    except SourceReadError as e:
        current_app.logger.warning("Rejected upload %s: %s", stored_name, e)
        dest.unlink(missing_ok=True)
        return _reject(422, str(e))

    current_app.logger.info("Stored upload %s (compression: %s)", dest, compressor)
    session["uploaded_file"] = str(dest)
    return jsonify({
        "success": True,
        "filename": stored_name,
        "compression": compressor,
        "message": "File uploaded successfully",
    })
