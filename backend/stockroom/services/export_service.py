# Overview: Spreadsheet-friendly CSV export of the catalog.

from __future__ import annotations

import re
from typing import Any, Iterable

from flask import current_app

from ..models import Product
from .products_service import query_products
from .stock_service import current_stock, latest_entry
from stockroom.time_utils import kst_file_stamp

CSV_HEADER = (
    "순번(3자리)",
    "상품번호",
    "상품명",
    "카테고리1",
    "카테고리2",
    "브랜드",
    "원가(최신)",
    "단가(최신)",
    "판매가(최신)",
    "재고",
    "최근입고수량",
    "최근입고일",
    "최근출고수량",
    "최근출고일",
    "이미지경로",
)

# Excel needs the BOM to detect UTF-8
UTF8_BOM = "\ufeff"

_NEEDS_QUOTING = re.compile(r'[",\n]')


def csv_escape(value: Any) -> str:
    text = "" if value is None else str(value)
    if _NEEDS_QUOTING.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def _latest(history: list[dict] | None, key: str) -> Any:
    entry = latest_entry(history)
    if entry is None:
        return ""
    value = entry.get(key)
    return "" if value is None else value


def product_row(p: Product) -> list[Any]:
    return [
        str(p.seq_no if p.seq_no is not None else "").zfill(3),
        p.product_code or "",
        p.name or "",
        p.category1 or "",
        p.category2 or "",
        p.brand or "",
        _latest(p.cost_history, "amount"),
        _latest(p.wholesale_price_history, "amount"),
        _latest(p.sale_price_history, "amount"),
        current_stock(p),
        _latest(p.inbound_records, "quantity"),
        _latest(p.inbound_records, "date"),
        _latest(p.outbound_records, "quantity"),
        _latest(p.outbound_records, "date"),
        _latest(p.photo_history, "path"),
    ]


def build_products_csv(products: Iterable[Product]) -> str:
    """Header line plus one line per product, joined with "\\n" (no BOM)."""
    lines = [",".join(csv_escape(h) for h in CSV_HEADER)]
    for p in products:
        lines.append(",".join(csv_escape(v) for v in product_row(p)))
    return "\n".join(lines)


def export_filename(suffix: str) -> str:
    return f"products_{suffix}_{kst_file_stamp()}.csv"


def export_products_csv(
    *,
    keyword: str | None = None,
    category1: str | None = None,
    category2: str | None = None,
    brand: str | None = None,
    sort_key: str = "seq_no",
    sort_order: str = "asc",
    page: int | None = None,
    per_page: int | None = None,
) -> tuple[bytes, str]:
    """
    Export the filtered, sorted catalog.

    Without a page every match is exported ("filtered_all"); with a page only
    that page is ("current_page").

    Returns:
        (UTF-8 bytes with BOM, download filename)

    Raises:
        ValidationError: unknown sort key / order
    """
    products = query_products(
        keyword=keyword,
        category1=category1,
        category2=category2,
        brand=brand,
        sort_key=sort_key,
        sort_order=sort_order,
    )

    suffix = "filtered_all"
    if page is not None:
        per_page = max(1, per_page or current_app.config["PRODUCT_PAGE_SIZE"])
        offset = (max(page, 1) - 1) * per_page
        products = products[offset:offset + per_page]
        suffix = "current_page"

    body = UTF8_BOM + build_products_csv(products)
    current_app.logger.info("Exported %d products to CSV", len(products))
    return body.encode("utf-8"), export_filename(suffix)
