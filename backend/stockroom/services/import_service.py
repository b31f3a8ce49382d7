# Overview: Service-layer operations for bulk product import; parses uploads and posts rows one by one.

from __future__ import annotations

import csv
import io
from typing import Any, BinaryIO

from flask import current_app

from ..extensions import db
from ..validation import ConflictError, ValidationError, parse_optional_amount, parse_quantity
from .products_service import (
    build_product,
    format_product_code,
    get_product_by_code,
    next_seq_no,
)
from stockroom.time_utils import kst_timestamp


class ImportFileError(ValueError):
    """Raised when an uploaded file cannot be read."""


XLSX_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}

# Spreadsheet header -> Product field
TEXT_COLUMNS = {
    "상품번호": "product_code",
    "상품명": "name",
    "카테고리1": "category1",
    "카테고리2": "category2",
    "상품_카테고리2": "product_category2",
    "브랜드": "brand",
    "바코드": "barcode",
    "가로": "width",
    "세로": "height",
    "알수량": "bead_count",
    "알사이즈": "bead_size",
    "원자재": "raw_material",
    "메모": "memo",
    "계절행사": "season_event",
    "최초_납품_상품명1": "first_delivery_name1",
    "최초_납품_상품명2": "first_delivery_name2",
}

# Spreadsheet header -> create argument
NUMBER_COLUMNS = {
    "원가": "cost",
    "단가": "wholesale_price",
    "판매가": "sale_price",
    "입고수량": "initial_stock",
}


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else None


def _is_blank_row(row: dict[str, Any]) -> bool:
    return all(_to_text(v) is None for v in row.values())


def read_rows(stream: BinaryIO, filename: str) -> list[dict[str, Any]]:
    """
    Read an uploaded CSV (UTF-8, BOM tolerated) or Excel workbook into
    header-keyed dicts.

    Raises:
        ImportFileError: unsupported extension or undecodable content
    """
    ext = (filename or "").rsplit(".", 1)[-1].lower()

    if ext == "csv":
        try:
            text = stream.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ImportFileError("CSV must be UTF-8 encoded")
        reader = csv.DictReader(io.StringIO(text))
        return [
            {(k or "").strip(): v for k, v in row.items() if k is not None}
            for row in reader
        ]

    if ext in XLSX_EXTENSIONS:
        from openpyxl import load_workbook
        try:
            wb = load_workbook(stream, read_only=True, data_only=True)
        except Exception as e:  # noqa: BLE001
            raise ImportFileError(f"Unreadable workbook: {e}")
        try:
            data = list(wb.active.iter_rows(values_only=True))
        finally:
            wb.close()
        if not data:
            return []
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        return [
            {headers[i]: row[i] for i in range(min(len(headers), len(row))) if headers[i]}
            for row in data[1:]
        ]

    raise ImportFileError("Unsupported file format (use .csv or .xlsx)")


def normalize_row(raw_row: dict[str, Any]) -> dict[str, Any]:
    """
    Map one spreadsheet row onto product fields.

    Raises:
        ValidationError: missing 상품명 or a number column that is not a number
    """
    patch: dict[str, Any] = {}
    for header, field in TEXT_COLUMNS.items():
        value = _to_text(raw_row.get(header))
        if value is not None:
            patch[field] = value

    if not patch.get("name"):
        raise ValidationError("상품명 is required")

    numbers: dict[str, int | None] = {}
    for header, arg in NUMBER_COLUMNS.items():
        raw = _to_text(raw_row.get(header))
        if arg == "initial_stock":
            numbers[arg] = parse_quantity(raw, header, allow_zero=True) if raw is not None else 0
        else:
            numbers[arg] = parse_optional_amount(raw, header)

    return {"patch": patch, **numbers}


def import_products(rows: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Create one product per row, in file order.

    Every row consumes the next seq_no, failed or not. A failed row is rolled
    back to its savepoint, logged and reported; later rows still import.

    Returns:
        {"total", "created", "failed", "errors": [{"row", "error"}]}
        where row is the spreadsheet line number (header is line 1).
    """
    seq_no = next_seq_no()
    today = kst_timestamp()

    total = 0
    errors: list[dict[str, Any]] = []

    for line_no, raw_row in enumerate(rows, start=2):
        if _is_blank_row(raw_row):
            continue
        total += 1
        row_seq = seq_no
        seq_no += 1

        nested = db.session.begin_nested()
        try:
            normalized = normalize_row(raw_row)
            patch = normalized["patch"]
            if not patch.get("product_code"):
                patch["product_code"] = format_product_code(row_seq)
            if get_product_by_code(patch["product_code"]):
                raise ConflictError(f"Product code already exists: {patch['product_code']}")

            db.session.add(build_product(
                patch=patch,
                seq_no=row_seq,
                date=today,
                cost=normalized["cost"],
                wholesale_price=normalized["wholesale_price"],
                sale_price=normalized["sale_price"],
                initial_stock=normalized["initial_stock"],
            ))
            db.session.flush()
            nested.commit()
        except Exception as exc:  # noqa: BLE001
            nested.rollback()
            current_app.logger.warning("Import row %d skipped: %s", line_no, exc)
            errors.append({"row": line_no, "error": str(exc)})

    db.session.commit()

    failed = len(errors)
    current_app.logger.info("Product import finished: %d rows, %d created, %d failed", total, total - failed, failed)
    return {
        "total": total,
        "created": total - failed,
        "failed": failed,
        "errors": errors,
    }


def import_products_file(stream: BinaryIO, filename: str) -> dict[str, Any]:
    return import_products(read_rows(stream, filename))
