# Overview: SQLAlchemy models for the catalog and order records the costing core reads and writes back to.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ORDER_STATUSES = ("NEW", "CONFIRMED", "IN_PROGRESS", "DONE", "CANCELED")


class Product(db.Model):
    """
    Product master data.

    Owned by the catalog. The costing core only checks existence, reads the
    price/packaging snapshot fields for reports, and writes cost_price_cents
    back when a purchase is posted with update_cost_price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=True)
    title = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Reference ("displayed") cost; not used for COGS, which comes from lots
    cost_price_cents = db.Column(db.Integer, nullable=True)
    packaging_cost_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} title={self.title!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "title": self.title,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "packaging_cost_cents": self.packaging_cost_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Order(db.Model):
    """Customer order header as seen by fulfillment and profit reporting."""
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="NEW", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    # Soft delete; deleted orders never count in reports
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at),
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """
    Order line with the price snapshot taken at checkout.

    cogs_cents is filled in by fulfillment with the FIFO cost returned by the
    consumption engine.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer, nullable=False)
    packaging_cost_cents = db.Column(db.Integer, nullable=True)

    cogs_cents = db.Column(db.Integer, nullable=True)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "qty": self.qty,
            "sale_price_cents": self.sale_price_cents,
            "packaging_cost_cents": self.packaging_cost_cents,
            "cogs_cents": self.cogs_cents,
        }
