# Overview: Service-layer operations for stock; derives on-hand quantities and records movements.

from __future__ import annotations

from typing import Any, Iterable

from flask import current_app

from ..extensions import db
from ..models import Product, DeletedProduct
from ..validation import ValidationError, parse_quantity
from stockroom.time_utils import kst_timestamp

"""
Stock Invariants (authoritative)

- Stock is derived from the product's inbound_records / outbound_records lists;
  it is never stored as a mutable quantity field.
- Current stock is SUM(inbound.quantity) - SUM(outbound.quantity).
- Missing lists count as empty.
- Derived stock may go negative; outbound movements do not check availability.
- Lists are append-only in insertion order. A removed record is moved to the
  matching voided_* list and no longer counts.
"""

DIRECTION_IN = "in"
DIRECTION_OUT = "out"
DIRECTIONS = (DIRECTION_IN, DIRECTION_OUT)

_LIVE_FIELD = {DIRECTION_IN: "inbound_records", DIRECTION_OUT: "outbound_records"}
_VOIDED_FIELD = {DIRECTION_IN: "voided_inbound_records", DIRECTION_OUT: "voided_outbound_records"}

# Display bands used by the product list
STOCK_LEVEL_CRITICAL = 20
STOCK_LEVEL_LOW = 50
STOCK_LEVEL_MODERATE = 100


def _records(source: Any, field: str) -> list[dict]:
    """Read a history list from a Product or a plain document dict."""
    if isinstance(source, dict):
        value = source.get(field)
    else:
        value = getattr(source, field, None)
    return list(value) if isinstance(value, list) else []


def _sum_quantities(records: Iterable[dict]) -> int:
    return sum(int(rec.get("quantity") or 0) for rec in records)


def total_inbound(product) -> int:
    return _sum_quantities(_records(product, "inbound_records"))


def total_outbound(product) -> int:
    return _sum_quantities(_records(product, "outbound_records"))


def current_stock(product) -> int:
    """Derived stock: inbound total minus outbound total."""
    return total_inbound(product) - total_outbound(product)


def latest_entry(history: list[dict] | None) -> dict | None:
    """Last appended entry of a history list (lists are chronological)."""
    if not history:
        return None
    return history[-1]


def stock_level(stock: int) -> str:
    if stock <= STOCK_LEVEL_CRITICAL:
        return "critical"
    if stock <= STOCK_LEVEL_LOW:
        return "low"
    if stock <= STOCK_LEVEL_MODERATE:
        return "moderate"
    return "ample"


def low_stock_status(stock: int) -> str:
    if stock == 0:
        return "out_of_stock"
    if stock <= STOCK_LEVEL_CRITICAL:
        return "reorder"
    return "normal"


def _require_direction(direction: str) -> str:
    if direction not in DIRECTIONS:
        raise ValidationError(f"direction must be one of: {', '.join(DIRECTIONS)}")
    return direction


def append_stock_record(product: Product, direction: str, quantity: int, *, date: str | None = None) -> dict:
    """
    Append a movement to the product in the current session (no commit).

    The whole list is reassigned so the JSON column is marked dirty.
    """
    field = _LIVE_FIELD[_require_direction(direction)]
    record = {"date": date or kst_timestamp(), "quantity": quantity}
    setattr(product, field, [*_records(product, field), record])
    return record


def record_stock_movement(*, product_id: int, direction: str, quantity: Any) -> dict | None:
    """
    Record a stock-in or stock-out for a product.

    Returns:
        Dict with the appended record and the new derived stock, or None if
        the product does not exist.

    Raises:
        ValidationError: bad direction or non-positive quantity
    """
    _require_direction(direction)
    qty = parse_quantity(quantity)

    product = db.session.get(Product, product_id)
    if product is None:
        return None

    record = append_stock_record(product, direction, qty)
    db.session.commit()

    current_app.logger.info(
        "Recorded stock %s of %s for product %s", direction, qty, product.product_code
    )
    return {
        "product_id": product.id,
        "direction": direction,
        "record": record,
        "stock": current_stock(product),
    }


def void_stock_record(*, product_id: int, direction: str, index: int) -> dict | None:
    """
    Remove one movement from the live list and archive it.

    The archived entry keeps its original date/quantity and gains voided_at.
    Returns None if the product does not exist.

    Raises:
        ValidationError: bad direction or index out of range
    """
    _require_direction(direction)
    product = db.session.get(Product, product_id)
    if product is None:
        return None

    live_field = _LIVE_FIELD[direction]
    voided_field = _VOIDED_FIELD[direction]
    records = _records(product, live_field)
    if index < 0 or index >= len(records):
        raise ValidationError(f"No {direction} record at index {index}")

    removed = records.pop(index)
    archived = {**removed, "voided_at": kst_timestamp()}
    setattr(product, live_field, records)
    setattr(product, voided_field, [*_records(product, voided_field), archived])
    db.session.commit()

    return {
        "product_id": product.id,
        "direction": direction,
        "voided": archived,
        "stock": current_stock(product),
    }


def list_low_stock(threshold: int | None = None) -> dict:
    """
    Products whose derived stock is at or below the threshold.

    The whole collection is loaded and filtered in memory.
    """
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    items = []
    for p in db.session.query(Product).order_by(Product.seq_no.asc(), Product.id.asc()).all():
        stock = current_stock(p)
        if stock > threshold:
            continue
        # newest photo, not the first one uploaded
        photo = latest_entry(p.photo_history)
        items.append({
            "id": p.id,
            "product_code": p.product_code,
            "name": p.name,
            "stock": stock,
            "status": low_stock_status(stock),
            "image_path": photo.get("path") if photo else None,
        })

    return {"items": items, "count": len(items), "threshold": threshold}


def _history_entries(document: dict, *, deleted: bool, deleted_at: str | None, key: str) -> list[dict]:
    entries = []
    for direction in DIRECTIONS:
        for index, rec in enumerate(_records(document, _LIVE_FIELD[direction])):
            entries.append({
                "id": f"{key}-{direction}-{index}-{'deleted' if deleted else 'active'}",
                "product_code": document.get("product_code"),
                "name": document.get("name"),
                "direction": direction,
                "quantity": int(rec.get("quantity") or 0),
                "date": rec.get("date") or "",
                "deleted": deleted,
                "deleted_at": deleted_at,
            })
    return entries


def list_stock_history(order: str = "desc") -> dict:
    """
    Every stock movement across live AND deleted products, flattened and
    sorted by movement date.

    Dates are "YYYY-MM-DD HH:MM:SS" strings, so string order is time order.
    Entries with the same date keep their collection order.
    """
    if order not in ("asc", "desc"):
        raise ValidationError("order must be 'asc' or 'desc'")

    entries: list[dict] = []
    for p in db.session.query(Product).order_by(Product.id.asc()).all():
        entries.extend(_history_entries(p.to_dict(), deleted=False, deleted_at=None, key=str(p.id)))

    for d in db.session.query(DeletedProduct).order_by(DeletedProduct.id.asc()).all():
        entries.extend(
            _history_entries(d.document or {}, deleted=True, deleted_at=d.deleted_at, key=str(d.original_id))
        )

    entries.sort(key=lambda e: e["date"], reverse=(order == "desc"))
    return {"items": entries, "count": len(entries), "order": order}


def list_stock_candidates(keyword: str = "", order: str = "asc") -> dict:
    """
    Product picker for the stock movement form.

    Case-sensitive substring match over "code name raw_material", sorted by
    product code.
    """
    if order not in ("asc", "desc"):
        raise ValidationError("order must be 'asc' or 'desc'")
    keyword = keyword or ""

    matches = []
    for p in db.session.query(Product).all():
        haystack = f"{p.product_code or ''} {p.name or ''} {p.raw_material or ''}"
        if keyword in haystack:
            matches.append(p)

    matches.sort(key=lambda p: p.product_code or "", reverse=(order == "desc"))
    return {
        "items": [
            {
                "id": p.id,
                "product_code": p.product_code,
                "name": p.name,
                "raw_material": p.raw_material,
                "stock": current_stock(p),
            }
            for p in matches
        ],
        "count": len(matches),
    }
