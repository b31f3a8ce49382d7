from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Estimate(db.Model):
    """
    Estimate (quotation) sheet.

    total is the sum of line amounts and is recomputed every time the lines
    are written; it is stored only so the list view needs no join.
    """
    __tablename__ = "estimates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    total = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "EstimateLine",
        backref="estimate",
        order_by="EstimateLine.line_no",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Estimate id={self.id} total={self.total}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "total": self.total,
            "line_count": len(self.lines),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class EstimateLine(db.Model):
    """
    One row of an estimate.

    product_code is an informal string match against Product.product_code at
    edit time; there is no foreign key and deleting a product leaves its
    estimate lines as they were.
    """
    __tablename__ = "estimate_lines"
    __table_args__ = (
        db.UniqueConstraint("estimate_id", "line_no", name="uq_estimate_lines_estimate_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    estimate_id = db.Column(db.Integer, db.ForeignKey("estimates.id"), nullable=False, index=True)
    line_no = db.Column(db.Integer, nullable=False)

    product_code = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False, default="")
    size = db.Column(db.String(64), nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=False, default=0)
    amount = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.String(255), nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "product_code": self.product_code,
            "name": self.name,
            "size": self.size,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "amount": self.amount,
            "note": self.note,
        }
