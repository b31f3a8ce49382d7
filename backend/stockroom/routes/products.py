# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product catalog routes.

Create and update accept either JSON or multipart/form-data; multipart is
what the product form sends when it carries an `image` file.

Price, stock and brand inputs are not product columns, so they are split off
before the descriptive fields go through validate_payload.
"""
from flask import Blueprint, Response, current_app, request
from ..extensions import db
from ..services import products_service
from ..services.export_service import export_products_csv
from ..services.image_service import ImageStorageError
from ..models import Product, DESCRIPTIVE_FIELDS
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_id_list,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(DESCRIPTIVE_FIELDS),
    required_on_create={"name"},
)

# Accepted alongside the descriptive fields, handled by the service
EXTRA_FIELDS = {
    "cost",
    "wholesale_price",
    "sale_price",
    "initial_stock",
    "inbound_quantity",
    "outbound_quantity",
    "brands",
}

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _read_payload() -> tuple[dict, dict, object]:
    """
    Returns (descriptive fields, extra fields, uploaded image or None).
    """
    image = None
    if request.mimetype == "multipart/form-data":
        payload = request.form.to_dict()
        if "brands" in request.form:
            payload["brands"] = request.form.getlist("brands")
        image = request.files.get("image") or None
    else:
        payload = request.get_json(silent=True) or {}
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

    fields = {k: v for k, v in payload.items() if k not in EXTRA_FIELDS}
    extras = {k: v for k, v in payload.items() if k in EXTRA_FIELDS}

    brands = extras.get("brands")
    if brands is not None and not isinstance(brands, list):
        raise ValidationError("brands must be a list")
    return fields, extras, image


def _list_args() -> dict:
    return {
        "keyword": request.args.get("keyword"),
        "category1": request.args.get("category1") or None,
        "category2": request.args.get("category2") or None,
        "brand": request.args.get("brand") or None,
        "sort_key": request.args.get("sort_key", "seq_no"),
        "sort_order": request.args.get("sort_order", "asc"),
        "page": request.args.get("page", type=int),
        "per_page": request.args.get("per_page", type=int),
    }


@products_bp.get("")
def list_products():
    """
    List products.

    Query params:
    - keyword: search over name / product code / brand
    - category1, category2, brand: exact-match filters
    - sort_key: seq_no | product_code | name | brand (default seq_no)
    - sort_order: asc | desc (default asc)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default PRODUCT_PAGE_SIZE)
    """
    try:
        return products_service.list_products(**_list_args())
    except ValidationError as e:
        return {"error": str(e)}, 400


@products_bp.get("/facets")
def product_facets():
    return products_service.list_facets()


@products_bp.get("/next-code")
def next_code():
    """Values the create form pre-fills."""
    return {
        "product_code": products_service.next_product_code(),
        "seq_no": products_service.next_seq_no(),
    }


@products_bp.get("/export.csv")
def export_csv():
    try:
        body, filename = export_products_csv(**_list_args())
    except ValidationError as e:
        return {"error": str(e)}, 400

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@products_bp.get("/deleted")
def list_deleted():
    return products_service.list_deleted_products()


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return {"error": "Product not found"}, 404
    return product


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    product_code may be omitted; the next PREFIX0000 code is assigned.
    """
    try:
        fields, extras, image = _read_payload()
        if not fields.get("product_code"):
            fields.pop("product_code", None)
        patch = validate_payload(model=Product, payload=fields, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(
            patch=patch,
            cost=extras.get("cost"),
            wholesale_price=extras.get("wholesale_price"),
            sale_price=extras.get("sale_price"),
            initial_stock=extras.get("initial_stock", 0),
            brands=extras.get("brands"),
            image=image,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ImageStorageError as e:
        return {"error": str(e)}, 502
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return {"error": "Product save failed"}, 500

    return created, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """
    Update a product.

    Prices are appended to their history only when changed; inbound /
    outbound quantities > 0 append stock records.
    """
    try:
        fields, extras, image = _read_payload()
        patch = validate_payload(model=Product, payload=fields, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        if extras.get("brands") is not None:
            patch["brand"] = products_service.join_brands(extras["brands"])
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(
            product_id=product_id,
            patch=patch,
            cost=extras.get("cost"),
            wholesale_price=extras.get("wholesale_price"),
            sale_price=extras.get("sale_price"),
            inbound_quantity=extras.get("inbound_quantity", 0),
            outbound_quantity=extras.get("outbound_quantity", 0),
            image=image,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ImageStorageError as e:
        return {"error": str(e)}, 502
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": "Product update failed"}, 500

    if not updated:
        return {"error": "Product not found"}, 404

    return updated, 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Soft delete: the product is archived, then removed."""
    try:
        deleted = products_service.delete_product(product_id=product_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": "Product delete failed"}, 500

    if not deleted:
        return {"error": "Product not found"}, 404

    return {"ok": True}, 200


@products_bp.post("/bulk-delete")
def bulk_delete_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    try:
        product_ids = parse_id_list(payload.get("product_ids"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        return products_service.bulk_delete_products(product_ids=product_ids), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to bulk delete products")
        return {"error": "Bulk delete failed"}, 500


@products_bp.post("/bulk-price")
def bulk_price_route():
    """
    Body: {"product_ids": [...], "field": "cost" | "wholesale" | "sale", "value": int}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    try:
        product_ids = parse_id_list(payload.get("product_ids"))
        result = products_service.bulk_update_price(
            product_ids=product_ids,
            field=payload.get("field"),
            value=payload.get("value"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to bulk update prices")
        return {"error": "Bulk price update failed"}, 500

    return result, 200
