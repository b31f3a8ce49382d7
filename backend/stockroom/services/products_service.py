# backend/stockroom/services/products_service.py
"""
Products Service

The catalog is small enough to be loaded whole: listing fetches every product
and filters, sorts and paginates in memory.

- Price changes never overwrite: they append to cost / wholesale / sale
  history lists.
- Deletion is soft: the document is copied to deleted_products first.
"""
from __future__ import annotations

import math
import re
from functools import cmp_to_key
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, DeletedProduct, DESCRIPTIVE_FIELDS
from ..validation import ConflictError, ValidationError, parse_amount, parse_quantity, parse_optional_amount
from .stock_service import (
    append_stock_record,
    current_stock,
    latest_entry,
    stock_level,
    total_inbound,
    total_outbound,
)
from .image_service import upload_product_image
from stockroom.time_utils import kst_timestamp

PRODUCT_MUTABLE_FIELDS = set(DESCRIPTIVE_FIELDS)

SORT_KEYS = ("seq_no", "product_code", "name", "brand")
SORT_ORDERS = ("asc", "desc")

# bulk price field -> history list
PRICE_FIELDS = {
    "cost": "cost_history",
    "wholesale": "wholesale_price_history",
    "sale": "sale_price_history",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _latest_amount(history: list[dict] | None):
    entry = latest_entry(history)
    return entry.get("amount") if entry else None


def display_name(p: Product) -> str:
    """code_name_category2_beadsize, blanks skipped."""
    parts = [p.product_code, p.name, p.category2, p.bead_size]
    return "_".join(str(x) for x in parts if x)


def product_payload(p: Product) -> dict:
    """Stored document plus the fields derived on every read."""
    data = p.to_dict()
    stock = current_stock(p)
    photo = latest_entry(p.photo_history)
    data.update({
        "seq_label": str(p.seq_no if p.seq_no is not None else "").zfill(3),
        "display_name": display_name(p),
        "total_in": total_inbound(p),
        "total_out": total_outbound(p),
        "stock": stock,
        "stock_level": stock_level(stock),
        "latest_cost": _latest_amount(p.cost_history),
        "latest_wholesale_price": _latest_amount(p.wholesale_price_history),
        "latest_sale_price": _latest_amount(p.sale_price_history),
        "latest_photo_path": photo.get("path") if photo else None,
    })
    return data


# ---------------------------------------------------------------------------
# Filtering / sorting
# ---------------------------------------------------------------------------

def _norm(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def _as_number(value: Any) -> float | None:
    """
    Loose numeric reading used when comparing sort values.

    Blank strings read as 0, so a blank value sorts numerically against
    numbers. Anything that is not a plain number returns None.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value if value is not None else "").strip()
    if not text:
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _sort_value(p: Product, key: str):
    if key == "seq_no":
        return _as_number(p.seq_no) or 0
    return getattr(p, key) or ""


def _compare(a: Any, b: Any) -> int:
    a_num, b_num = _as_number(a), _as_number(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)
    a_str, b_str = str(a), str(b)
    return (a_str > b_str) - (a_str < b_str)


def filter_products(
    products: Iterable[Product],
    *,
    keyword: str | None = None,
    category1: str | None = None,
    category2: str | None = None,
    brand: str | None = None,
) -> list[Product]:
    """
    Keyword: trimmed, case-insensitive substring of name, product code or brand.
    category1 / category2 / brand: exact match when given.
    """
    kw = _norm(keyword)
    matched = []
    for p in products:
        match_keyword = kw in _norm(p.name) or kw in _norm(p.product_code) or kw in _norm(p.brand)
        if not match_keyword:
            continue
        if category1 and p.category1 != category1:
            continue
        if category2 and p.category2 != category2:
            continue
        if brand and p.brand != brand:
            continue
        matched.append(p)
    return matched


def sort_products(products: Iterable[Product], *, sort_key: str = "seq_no", sort_order: str = "asc") -> list[Product]:
    """
    Both values numeric -> numeric comparison, otherwise string comparison.
    The decision is made per pair.
    """
    if sort_key not in SORT_KEYS:
        raise ValidationError(f"sort_key must be one of: {', '.join(SORT_KEYS)}")
    if sort_order not in SORT_ORDERS:
        raise ValidationError("sort_order must be 'asc' or 'desc'")

    sign = 1 if sort_order == "asc" else -1

    def cmp(a: Product, b: Product) -> int:
        return sign * _compare(_sort_value(a, sort_key), _sort_value(b, sort_key))

    return sorted(products, key=cmp_to_key(cmp))


def query_products(
    *,
    keyword: str | None = None,
    category1: str | None = None,
    category2: str | None = None,
    brand: str | None = None,
    sort_key: str = "seq_no",
    sort_order: str = "asc",
) -> list[Product]:
    """Fetch the whole collection, then filter and sort in memory."""
    products = db.session.query(Product).order_by(Product.id.asc()).all()
    filtered = filter_products(
        products,
        keyword=keyword,
        category1=category1,
        category2=category2,
        brand=brand,
    )
    return sort_products(filtered, sort_key=sort_key, sort_order=sort_order)


def list_products(
    *,
    keyword: str | None = None,
    category1: str | None = None,
    category2: str | None = None,
    brand: str | None = None,
    sort_key: str = "seq_no",
    sort_order: str = "asc",
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional pagination.

    Args:
        keyword: search text (name / product code / brand)
        category1, category2, brand: exact-match filters
        sort_key: seq_no | product_code | name | brand
        sort_order: asc | desc
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default PRODUCT_PAGE_SIZE)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.

    Raises:
        ValidationError: unknown sort key / order
    """
    ordered = query_products(
        keyword=keyword,
        category1=category1,
        category2=category2,
        brand=brand,
        sort_key=sort_key,
        sort_order=sort_order,
    )

    # If no pagination requested, return all items
    if page is None:
        return {
            "items": [product_payload(p) for p in ordered],
            "count": len(ordered),
        }

    per_page = max(1, per_page or current_app.config["PRODUCT_PAGE_SIZE"])
    page = max(page, 1)  # Ensure page >= 1

    total = len(ordered)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    offset = (page - 1) * per_page
    items = ordered[offset:offset + per_page]

    return {
        "items": [product_payload(p) for p in items],
        "count": len(items),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_facets() -> dict:
    """Distinct brand / category values for the filter dropdowns."""
    products = db.session.query(Product).all()

    def distinct(field: str) -> list[str]:
        return sorted({getattr(p, field) for p in products if isinstance(getattr(p, field), str) and getattr(p, field)})

    return {
        "brands": distinct("brand"),
        "category1": distinct("category1"),
        "category2": distinct("category2"),
    }


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

def next_seq_no() -> int:
    current_max = db.session.query(func.max(Product.seq_no)).scalar()
    return int(current_max or 0) + 1


_LEADING_DIGITS = re.compile(r"^\s*[+-]?(\d+)")


def next_product_code(prefix: str | None = None) -> str:
    """
    PREFIX + 4-digit number, one past the highest code already using PREFIX.

    Only the leading digits after the prefix count ("BS0012-A" reads as 12);
    codes with no digits there are ignored.
    """
    if prefix is None:
        prefix = current_app.config["PRODUCT_CODE_PREFIX"]

    codes = [
        code for (code,) in db.session.query(Product.product_code)
        .filter(Product.product_code.startswith(prefix))
        .all()
    ]
    max_number = 0
    for code in codes:
        m = _LEADING_DIGITS.match(code[len(prefix):])
        if m and int(m.group(1)) > max_number:
            max_number = int(m.group(1))
    return f"{prefix}{str(max_number + 1).zfill(4)}"


def format_product_code(seq_no: int, prefix: str | None = None) -> str:
    if prefix is None:
        prefix = current_app.config["PRODUCT_CODE_PREFIX"]
    return f"{prefix}{str(seq_no).zfill(4)}"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_product(product_id: int) -> dict | None:
    p = db.session.get(Product, product_id)
    return product_payload(p) if p else None


def get_product_by_code(product_code: str) -> Product | None:
    if not product_code:
        return None
    return db.session.query(Product).filter(Product.product_code == product_code).first()


def _ensure_code_available(product_code: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.product_code == product_code)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise ConflictError("Product code already exists.")


def join_brands(brands: Iterable[str]) -> str:
    """De-duplicated, trimmed, sorted, joined with ", "."""
    cleaned = {b.strip() for b in brands if isinstance(b, str) and b.strip()}
    return ", ".join(sorted(cleaned, key=lambda b: (b.casefold(), b)))


def _history_entry(amount: int, date: str) -> dict:
    return {"date": date, "amount": amount}


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def build_product(
    *,
    patch: dict,
    seq_no: int,
    date: str,
    cost: int | None = None,
    wholesale_price: int | None = None,
    sale_price: int | None = None,
    initial_stock: int = 0,
    image_path: str | None = None,
) -> Product:
    """
    New Product with its initial history entries (not added to the session).

    Each given price becomes the first entry of its history list; an initial
    stock > 0 becomes the first inbound record.
    """
    p = Product(seq_no=seq_no)
    apply_product_patch(p, patch)
    p.photo_history = [{"date": date, "path": image_path}] if image_path else []
    p.cost_history = [_history_entry(cost, date)] if cost is not None else []
    p.wholesale_price_history = [_history_entry(wholesale_price, date)] if wholesale_price is not None else []
    p.sale_price_history = [_history_entry(sale_price, date)] if sale_price is not None else []
    p.inbound_records = [{"date": date, "quantity": initial_stock}] if initial_stock > 0 else []
    p.outbound_records = []
    p.voided_wholesale_price_history = []
    p.voided_inbound_records = []
    p.voided_outbound_records = []
    return p


def create_product(
    *,
    patch: dict,
    cost: Any = None,
    wholesale_price: Any = None,
    sale_price: Any = None,
    initial_stock: Any = 0,
    brands: list[str] | None = None,
    image=None,
) -> dict:
    """
    Register a product.

    Args:
        patch: validated descriptive fields (product_code optional)
        cost, wholesale_price, sale_price: starting prices (won)
        initial_stock: first inbound quantity, ignored when 0
        brands: brand tags; stored sorted and comma-joined in brand
        image: uploaded file (werkzeug FileStorage) or None

    Returns:
        Created product payload

    Raises:
        ValidationError: bad price / quantity
        ConflictError: If product code already exists
        ImageStorageError: If the image upload fails
    """
    cost = parse_optional_amount(cost, "cost")
    wholesale_price = parse_optional_amount(wholesale_price, "wholesale_price")
    sale_price = parse_optional_amount(sale_price, "sale_price")
    initial_stock = parse_quantity(initial_stock or 0, "initial_stock", allow_zero=True)

    patch = dict(patch)
    if brands is not None:
        patch["brand"] = join_brands(brands)
    if not patch.get("product_code"):
        patch["product_code"] = next_product_code()
    _ensure_code_available(patch["product_code"])

    image_path = None
    if image is not None:
        image_path = upload_product_image(
            image.stream,
            image.filename,
            content_type=getattr(image, "mimetype", None),
        )

    p = build_product(
        patch=patch,
        seq_no=next_seq_no(),
        date=kst_timestamp(),
        cost=cost,
        wholesale_price=wholesale_price,
        sale_price=sale_price,
        initial_stock=initial_stock,
        image_path=image_path,
    )
    db.session.add(p)
    db.session.commit()

    current_app.logger.info("Created product %s (seq %s)", p.product_code, p.seq_no)
    return product_payload(p)


def update_product(
    *,
    product_id: int,
    patch: dict,
    cost: Any = None,
    wholesale_price: Any = None,
    sale_price: Any = None,
    inbound_quantity: Any = 0,
    outbound_quantity: Any = 0,
    image=None,
) -> dict | None:
    """
    Edit a product.

    Descriptive fields are overwritten. A price is appended to its history
    only when it differs from the latest entry. Inbound / outbound quantities
    > 0 append a stock record. A new image appends to photo_history.

    Returns:
        Updated product payload, or None if not found

    Raises:
        ValidationError: bad price / quantity
        ConflictError: If new product code already exists
    """
    cost = parse_optional_amount(cost, "cost")
    wholesale_price = parse_optional_amount(wholesale_price, "wholesale_price")
    sale_price = parse_optional_amount(sale_price, "sale_price")
    inbound_quantity = parse_quantity(inbound_quantity or 0, "inbound_quantity", allow_zero=True)
    outbound_quantity = parse_quantity(outbound_quantity or 0, "outbound_quantity", allow_zero=True)

    p = db.session.get(Product, product_id)
    if not p:
        return None

    # Product code uniqueness enforcement if changing code
    if patch.get("product_code") and patch["product_code"] != p.product_code:
        _ensure_code_available(patch["product_code"], exclude_id=p.id)

    # Upload before touching the product so a storage failure leaves it clean
    image_path = None
    if image is not None:
        image_path = upload_product_image(
            image.stream,
            image.filename,
            content_type=getattr(image, "mimetype", None),
        )

    today = kst_timestamp()
    changed: list[str] = []

    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS and getattr(p, k) != v:
            changed.append(k)
    apply_product_patch(p, patch)

    for value, history_field in (
        (cost, "cost_history"),
        (wholesale_price, "wholesale_price_history"),
        (sale_price, "sale_price_history"),
    ):
        if value is None:
            continue
        history = list(getattr(p, history_field) or [])
        if _latest_amount(history) == value:
            continue
        setattr(p, history_field, [*history, _history_entry(value, today)])
        changed.append(history_field)

    if inbound_quantity > 0:
        append_stock_record(p, "in", inbound_quantity, date=today)
        changed.append("inbound_records")
    if outbound_quantity > 0:
        append_stock_record(p, "out", outbound_quantity, date=today)
        changed.append("outbound_records")

    if image_path:
        p.photo_history = [*(p.photo_history or []), {"date": today, "path": image_path}]
        changed.append("photo_history")

    if not changed:
        return product_payload(p)

    db.session.commit()
    current_app.logger.info("Updated product %s: %s", p.product_code, ", ".join(changed))
    return product_payload(p)


def bulk_update_price(*, product_ids: list[int], field: str, value: Any) -> dict:
    """
    Append the same price to the chosen history of every selected product.

    Unknown ids are reported back, not treated as an error.
    """
    history_field = PRICE_FIELDS.get(field)
    if history_field is None:
        raise ValidationError(f"field must be one of: {', '.join(PRICE_FIELDS)}")
    amount = parse_amount(value, "value")

    today = kst_timestamp()
    products = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    found = {p.id for p in products}

    for p in products:
        history = list(getattr(p, history_field) or [])
        setattr(p, history_field, [*history, _history_entry(amount, today)])

    db.session.commit()
    current_app.logger.info("Bulk %s price update to %s for %d products", field, amount, len(products))
    return {
        "updated": len(products),
        "field": field,
        "value": amount,
        "missing_ids": [pid for pid in product_ids if pid not in found],
    }


def _archive_and_delete(p: Product, deleted_at: str) -> None:
    db.session.add(DeletedProduct(
        original_id=p.id,
        product_code=p.product_code,
        document=p.to_dict(),
        deleted_at=deleted_at,
    ))
    db.session.delete(p)


def delete_product(*, product_id: int) -> bool:
    """
    Soft-delete a product: copy into deleted_products, then remove.

    Returns:
        True if deleted, False if not found
    """
    p = db.session.get(Product, product_id)
    if not p:
        return False

    product_code = p.product_code
    _archive_and_delete(p, kst_timestamp())
    db.session.commit()
    current_app.logger.info("Deleted product %s (archived)", product_code)
    return True


def bulk_delete_products(*, product_ids: list[int]) -> dict:
    deleted_at = kst_timestamp()
    products = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    found = {p.id for p in products}

    for p in products:
        _archive_and_delete(p, deleted_at)

    db.session.commit()
    return {
        "deleted": len(products),
        "missing_ids": [pid for pid in product_ids if pid not in found],
    }


def list_deleted_products() -> dict:
    rows = db.session.query(DeletedProduct).order_by(DeletedProduct.deleted_at.desc(), DeletedProduct.id.desc()).all()
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}
