# Overview: SQLAlchemy models for supplier purchases and their line items.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PURCHASE_STATUSES = ("DRAFT", "POSTED", "CANCELED")


class Purchase(db.Model):
    """
    Supplier purchase document.

    LIFECYCLE:
    1. DRAFT: Created with at least one item; supplier, comment and the full
       item set may be edited
    2. POSTED: Lots and IN movements created (terminal)
    3. CANCELED: Abandoned before posting, no stock effect (terminal)

    IMMUTABLE: Once POSTED or CANCELED, neither header nor items change.

    version_id guards the DRAFT -> POSTED flip against a concurrent writer on
    stores that ignore SELECT ... FOR UPDATE.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    supplier = db.Column(db.String(255), nullable=True)
    comment = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)

    posted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} status={self.status}>"

    @property
    def total_cost_cents(self) -> int:
        return sum(item.line_cost_cents for item in self.items)

    def to_dict(self, include_items: bool = True) -> dict:
        result = {
            "id": self.id,
            "supplier": self.supplier,
            "comment": self.comment,
            "status": self.status,
            "posted_at": to_utc_z(self.posted_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items_count": len(self.items),
            "total_cost_cents": self.total_cost_cents,
        }
        if include_items:
            result["items"] = [item.to_dict() for item in self.items]
        return result


class PurchaseItem(db.Model):
    """Purchase line: product, quantity and unit cost. One lot per line on posting."""
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_purchase_items_qty_positive"),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_purchase_items_cost_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_cost_cents(self) -> int:
        return self.qty * self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product": {
                "id": self.product.id,
                "title": self.product.title,
                "sku": self.product.sku,
            } if self.product is not None else None,
            "qty": self.qty,
            "unit_cost_cents": self.unit_cost_cents,
            "line_cost_cents": self.line_cost_cents,
        }
