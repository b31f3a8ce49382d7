# Overview: Flask API routes for imports; parses input and returns JSON responses.

"""
Import Routes

Supports CSV and Excel (.xlsx) uploads with a Korean header row.
"""

from flask import Blueprint, current_app, request, jsonify

from ..extensions import db
from ..services import import_service
from ..services.import_service import ImportFileError


imports_bp = Blueprint("imports", __name__, url_prefix="/api/imports")


@imports_bp.post("/products")
def import_products_route():
    """
    Upload a product sheet. Rows are imported one by one; failed rows are
    reported in the result and do not stop the import.
    """
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    file = request.files["file"]

    try:
        rows = import_service.read_rows(file.stream, file.filename or "")
    except ImportFileError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = import_service.import_products(rows)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to import products")
        return jsonify({"error": "Import failed"}), 500

    return jsonify(result), 201
