from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

# Descriptive (non-history) product fields, in the order the catalog shows them.
DESCRIPTIVE_FIELDS = (
    "product_code",
    "name",
    "category1",
    "category2",
    "product_category2",
    "brand",
    "barcode",
    "width",
    "height",
    "bead_count",
    "bead_size",
    "raw_material",
    "memo",
    "season_event",
    "first_delivery_name1",
    "first_delivery_name2",
)

# Append-only lists carried on every product document.
HISTORY_FIELDS = (
    "photo_history",
    "cost_history",
    "wholesale_price_history",
    "sale_price_history",
    "inbound_records",
    "outbound_records",
    "voided_wholesale_price_history",
    "voided_inbound_records",
    "voided_outbound_records",
)


class Product(db.Model):
    """
    Product document.

    Identifying fields are plain columns. Every kind of change over time
    (cost, wholesale price, sale price, photos, stock in, stock out) lives in
    its own append-only JSON list, in insertion order:

    - price lists:  [{"date": "YYYY-MM-DD HH:MM:SS", "amount": 1200}, ...]
    - stock lists:  [{"date": "...", "quantity": 10}, ...]
    - photo list:   [{"date": "...", "path": "productImages/..."}, ...]

    Current stock is NOT a column. It is always derived as
    sum(inbound quantities) - sum(outbound quantities)
    (see services/stock_service.py).

    Lists are rewritten as a whole on every append; concurrent writers
    replace each other's list (last write wins).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category1", "category2"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Display sequence ("번호"); assigned as max + 1 on creation
    seq_no = db.Column(db.Integer, nullable=False, index=True)

    # Human product code ("상품번호"), e.g. BS0007
    product_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=True)

    category1 = db.Column(db.String(128), nullable=True)
    category2 = db.Column(db.String(128), nullable=True)
    product_category2 = db.Column(db.String(128), nullable=True)
    brand = db.Column(db.String(255), nullable=True, index=True)
    barcode = db.Column(db.String(64), nullable=True)

    width = db.Column(db.String(32), nullable=True)
    height = db.Column(db.String(32), nullable=True)
    bead_count = db.Column(db.String(32), nullable=True)
    bead_size = db.Column(db.String(32), nullable=True)

    raw_material = db.Column(db.String(255), nullable=True)
    memo = db.Column(db.Text, nullable=True)
    season_event = db.Column(db.String(128), nullable=True)
    first_delivery_name1 = db.Column(db.String(255), nullable=True)
    first_delivery_name2 = db.Column(db.String(255), nullable=True)

    photo_history = db.Column(db.JSON, nullable=False, default=list)
    cost_history = db.Column(db.JSON, nullable=False, default=list)
    wholesale_price_history = db.Column(db.JSON, nullable=False, default=list)
    sale_price_history = db.Column(db.JSON, nullable=False, default=list)
    inbound_records = db.Column(db.JSON, nullable=False, default=list)
    outbound_records = db.Column(db.JSON, nullable=False, default=list)

    # Entries removed from a live list are archived here, never dropped
    voided_wholesale_price_history = db.Column(db.JSON, nullable=False, default=list)
    voided_inbound_records = db.Column(db.JSON, nullable=False, default=list)
    voided_outbound_records = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        """The stored document, without derived fields."""
        data = {"id": self.id, "seq_no": self.seq_no}
        for field in DESCRIPTIVE_FIELDS:
            data[field] = getattr(self, field)
        for field in HISTORY_FIELDS:
            data[field] = list(getattr(self, field) or [])
        data["created_at"] = to_utc_z(self.created_at)
        return data


class DeletedProduct(db.Model):
    """
    Soft-delete archive.

    Holds a snapshot of the product document as it was at deletion time plus
    the deletion stamp (KST wall clock, same format as history entries).
    Rows are written once by copy-then-delete and never mutated.
    """
    __tablename__ = "deleted_products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    original_id = db.Column(db.Integer, nullable=False, index=True)
    product_code = db.Column(db.String(64), nullable=True, index=True)
    document = db.Column(db.JSON, nullable=False)
    deleted_at = db.Column(db.String(19), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<DeletedProduct id={self.id} original_id={self.original_id} code={self.product_code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original_id": self.original_id,
            "product_code": self.product_code,
            "document": self.document,
            "deleted_at": self.deleted_at,
        }
