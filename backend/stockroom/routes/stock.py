# Overview: Flask API routes for stock movements, low-stock and movement history.

from flask import Blueprint, current_app, request

from ..extensions import db
from ..services import stock_service
from ..validation import ValidationError, coerce_int


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/movements")
def record_movement_route():
    """
    Record a stock-in or stock-out.

    Body: {"product_id": int, "direction": "in" | "out", "quantity": int}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    if payload.get("product_id") is None:
        return {"error": "product_id is required"}, 400

    try:
        result = stock_service.record_stock_movement(
            product_id=coerce_int(payload.get("product_id"), "product_id"),
            direction=payload.get("direction"),
            quantity=payload.get("quantity"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record stock movement")
        return {"error": "Stock movement failed"}, 500

    if result is None:
        return {"error": "Product not found"}, 404
    return result, 201


@stock_bp.delete("/<int:product_id>/<direction>/<int:index>")
def void_record_route(product_id: int, direction: str, index: int):
    """Move one in/out record to the voided archive."""
    try:
        result = stock_service.void_stock_record(product_id=product_id, direction=direction, index=index)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to void stock record")
        return {"error": "Stock record removal failed"}, 500

    if result is None:
        return {"error": "Product not found"}, 404
    return result, 200


@stock_bp.get("/low")
def low_stock_route():
    """Query params: threshold (default LOW_STOCK_THRESHOLD)"""
    threshold = request.args.get("threshold", type=int)
    return stock_service.list_low_stock(threshold=threshold)


@stock_bp.get("/history")
def stock_history_route():
    """Query params: order = asc | desc (default desc)"""
    try:
        return stock_service.list_stock_history(order=request.args.get("order", "desc"))
    except ValidationError as e:
        return {"error": str(e)}, 400


@stock_bp.get("/candidates")
def stock_candidates_route():
    """Query params: keyword, order = asc | desc (default asc)"""
    try:
        return stock_service.list_stock_candidates(
            keyword=request.args.get("keyword", ""),
            order=request.args.get("order", "asc"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
