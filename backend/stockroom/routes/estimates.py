# Overview: Flask API routes for estimates; parses input and returns JSON responses.

from flask import Blueprint, current_app, request, jsonify

from ..extensions import db
from ..services import estimate_service
from ..validation import ValidationError


estimates_bp = Blueprint("estimates", __name__, url_prefix="/api/estimates")


@estimates_bp.get("")
def list_estimates_route():
    return jsonify(estimate_service.list_estimates()), 200


@estimates_bp.post("")
def create_estimate_route():
    """
    Body: {"items": [{"product_code", "quantity", "note", "name"?, "size"?, "unit_price"?}, ...]}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        estimate = estimate_service.create_estimate(items=payload.get("items"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create estimate")
        return jsonify({"error": "Estimate save failed"}), 500

    return jsonify({"estimate": estimate}), 201


@estimates_bp.get("/<int:estimate_id>")
def get_estimate_route(estimate_id: int):
    estimate = estimate_service.get_estimate(estimate_id)
    if not estimate:
        return jsonify({"error": "Estimate not found"}), 404
    return jsonify({"estimate": estimate}), 200


@estimates_bp.put("/<int:estimate_id>")
def update_estimate_route(estimate_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    try:
        estimate = estimate_service.update_estimate(estimate_id=estimate_id, items=payload.get("items"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update estimate %s", estimate_id)
        return jsonify({"error": "Estimate update failed"}), 500

    if not estimate:
        return jsonify({"error": "Estimate not found"}), 404
    return jsonify({"estimate": estimate}), 200


@estimates_bp.delete("/<int:estimate_id>")
def delete_estimate_route(estimate_id: int):
    if not estimate_service.delete_estimate(estimate_id=estimate_id):
        return jsonify({"error": "Estimate not found"}), 404
    return jsonify({"ok": True}), 200


@estimates_bp.get("/<int:estimate_id>/print")
def print_estimate_route(estimate_id: int):
    """HTML fragment for the print dialog."""
    min_rows = request.args.get("min_rows", type=int)
    html = estimate_service.render_estimate_html(estimate_id=estimate_id, min_rows=min_rows)
    if html is None:
        return jsonify({"error": "Estimate not found"}), 404
    return html, 200, {"Content-Type": "text/html; charset=utf-8"}
