# Overview: Service-layer operations for estimates; builds priced lines from the catalog and renders the print sheet.

from __future__ import annotations

from typing import Any

from flask import current_app, render_template

from ..extensions import db
from ..models import Estimate, EstimateLine
from ..validation import ValidationError, coerce_int, parse_amount, parse_quantity
from .products_service import get_product_by_code
from .stock_service import latest_entry
from stockroom.time_utils import to_kst_date_label

"""
Estimate rules:

- A line whose product_code matches a product takes its name, size and unit
  price from that product at the moment the line is written:
    name       = name_productcategory2_beadsize (blanks skipped)
    size       = bead_size
    unit_price = latest wholesale price (0 when there is none)
- Lines with an unknown or empty code keep the name / size / unit_price the
  client sent.
- amount = quantity * unit_price; total = sum(amount). Both are recomputed on
  every write and never accepted from the client.
"""


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def build_line(
    *,
    product_code: str | None,
    quantity: Any = 1,
    note: str | None = None,
    name: str | None = None,
    size: str | None = None,
    unit_price: Any = None,
) -> dict:
    qty = parse_quantity(quantity if quantity is not None else 1, "quantity", allow_zero=True)
    code = _text(product_code)

    product = get_product_by_code(code) if code else None
    if product is not None:
        parts = [_text(product.name), _text(product.product_category2), _text(product.bead_size)]
        name = "_".join(p for p in parts if p)
        size = product.bead_size or ""
        entry = latest_entry(product.wholesale_price_history)
        price = coerce_int(entry.get("amount") or 0, "unit_price") if entry else 0
    else:
        name = _text(name)
        size = _text(size)
        price = parse_amount(unit_price, "unit_price") if unit_price not in (None, "") else 0

    return {
        "product_code": code or None,
        "name": name,
        "size": size,
        "quantity": qty,
        "unit_price": price,
        "amount": qty * price,
        "note": _text(note),
    }


def _build_lines(items: Any) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Estimate has no items.")

    lines = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        try:
            line = build_line(
                product_code=item.get("product_code"),
                quantity=item.get("quantity", 1),
                note=item.get("note"),
                name=item.get("name"),
                size=item.get("size"),
                unit_price=item.get("unit_price"),
            )
        except ValidationError as e:
            raise ValidationError(f"items[{idx}]: {e}")
        line["line_no"] = idx
        lines.append(line)
    return lines


def _replace_lines(estimate: Estimate, lines: list[dict]) -> None:
    estimate.lines.clear()
    # Old rows must be gone before the (estimate_id, line_no) pairs are reused
    db.session.flush()
    for line in lines:
        estimate.lines.append(EstimateLine(**line))
    estimate.total = sum(line["amount"] for line in lines)


def create_estimate(*, items: Any) -> dict:
    """
    Save a new estimate.

    Raises:
        ValidationError: no items, or a bad quantity / price
    """
    lines = _build_lines(items)

    estimate = Estimate(total=0)
    db.session.add(estimate)
    _replace_lines(estimate, lines)
    db.session.commit()

    current_app.logger.info("Created estimate %s (%d lines, total %s)", estimate.id, len(lines), estimate.total)
    return estimate.to_dict()


def list_estimates() -> dict:
    """Newest first."""
    rows = db.session.query(Estimate).order_by(Estimate.created_at.desc(), Estimate.id.desc()).all()
    return {"items": [e.to_dict() for e in rows], "count": len(rows)}


def get_estimate(estimate_id: int) -> dict | None:
    estimate = db.session.get(Estimate, estimate_id)
    return estimate.to_dict() if estimate else None


def update_estimate(*, estimate_id: int, items: Any) -> dict | None:
    """
    Replace all lines of an estimate and recompute its total.

    Returns None if the estimate does not exist.
    """
    lines = _build_lines(items)
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        return None

    _replace_lines(estimate, lines)
    db.session.commit()
    return estimate.to_dict()


def delete_estimate(*, estimate_id: int) -> bool:
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        return False
    db.session.delete(estimate)
    db.session.commit()
    current_app.logger.info("Deleted estimate %s", estimate_id)
    return True


def render_estimate_html(*, estimate_id: int, min_rows: int | None = None) -> str | None:
    """
    Printable estimate sheet (HTML fragment).

    The line table is padded with numbered blank rows up to min_rows
    (ESTIMATE_MIN_ROWS). Returns None if the estimate does not exist.
    """
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        return None

    cfg = current_app.config
    if min_rows is None:
        min_rows = cfg["ESTIMATE_MIN_ROWS"]

    lines = list(estimate.lines)
    blank_rows = list(range(len(lines) + 1, max(min_rows, len(lines)) + 1))

    return render_template(
        "estimates/print.html",
        estimate=estimate,
        lines=lines,
        blank_rows=blank_rows,
        date_label=to_kst_date_label(estimate.created_at),
        supplier={
            "name": cfg["ESTIMATE_SUPPLIER_NAME"],
            "reg_no": cfg["ESTIMATE_SUPPLIER_REG_NO"],
            "representative": cfg["ESTIMATE_SUPPLIER_REPRESENTATIVE"],
            "address": cfg["ESTIMATE_SUPPLIER_ADDRESS"],
        },
        intro_line=cfg["ESTIMATE_INTRO_LINE"],
        contact_line=cfg["ESTIMATE_CONTACT_LINE"],
    )
