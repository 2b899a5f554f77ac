# Overview: SQLAlchemy models for cost lots, the movement ledger, lot allocations and write-offs.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


MOVEMENT_TYPES = ("IN", "OUT", "ADJUST")
SOURCE_TYPES = ("PURCHASE", "ORDER", "MANUAL")


class InventoryLot(db.Model):
    """
    A batch of stock received at one unit cost.

    INVARIANTS:
    - unit_cost_cents and qty_received never change after creation
    - 0 <= qty_remaining <= qty_received, and qty_remaining only decreases
    - lots are never deleted, exhausted lots stay for audit

    FIFO order is (received_at, id) ascending.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        db.CheckConstraint("qty_remaining >= 0", name="ck_lots_remaining_nonnegative"),
        db.CheckConstraint("qty_remaining <= qty_received", name="ck_lots_remaining_le_received"),
        db.CheckConstraint("unit_cost_cents >= 0", name="ck_lots_cost_nonnegative"),
        db.Index("ix_lots_product_received", "product_id", "received_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Origin purchase; NULL for lots seeded outside the purchase flow
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)

    unit_cost_cents = db.Column(db.Integer, nullable=False)
    qty_received = db.Column(db.Integer, nullable=False)
    qty_remaining = db.Column(db.Integer, nullable=False)

    received_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<InventoryLot id={self.id} product_id={self.product_id} "
            f"{self.qty_remaining}/{self.qty_received}@{self.unit_cost_cents}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "purchase_id": self.purchase_id,
            "unit_cost_cents": self.unit_cost_cents,
            "qty_received": self.qty_received,
            "qty_remaining": self.qty_remaining,
            "remaining_value_cents": self.qty_remaining * self.unit_cost_cents,
            "received_at": to_utc_z(self.received_at),
            "created_at": to_utc_z(self.created_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only ledger entry for a stock quantity change.

    quantity is signed: positive for IN, negative for OUT, either for ADJUST.
    Stock on hand is SUM(quantity); it must reconcile with SUM(qty_remaining)
    over the product's lots.

    cost_total_cents is the FIFO cost attributed when an OUT movement was
    recorded; reports read it instead of re-deriving cost.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_movements_product_created", "product_id", "created_at"),
        db.Index("ix_movements_source", "source_type", "source_id"),
        db.UniqueConstraint("source_type", "source_id", "source_line_id", name="uq_movements_source_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)

    source_type = db.Column(db.String(16), nullable=False, index=True)
    source_id = db.Column(db.String(64), nullable=True)
    # Order line for ORDER consumption; makes retries idempotent
    source_line_id = db.Column(db.String(64), nullable=True)

    cost_total_cents = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")
    allocations = db.relationship(
        "LotAllocation",
        back_populates="movement",
        order_by="LotAllocation.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_title": self.product.title if self.product is not None else None,
            "quantity": self.quantity,
            "type": self.type,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "source_line_id": self.source_line_id,
            "cost_total_cents": self.cost_total_cents,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class LotAllocation(db.Model):
    """Quantity taken from one lot by one OUT movement, at that lot's unit cost."""
    __tablename__ = "lot_allocations"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_allocations_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    movement_id = db.Column(db.Integer, db.ForeignKey("inventory_movements.id"), nullable=False, index=True)
    lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    movement = db.relationship("InventoryMovement", back_populates="allocations")
    lot = db.relationship("InventoryLot")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "movement_id": self.movement_id,
            "lot_id": self.lot_id,
            "qty": self.qty,
            "unit_cost_cents": self.unit_cost_cents,
        }


class WriteOff(db.Model):
    """Manual removal of damaged or lost stock, costed FIFO like a sale."""
    __tablename__ = "write_offs"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_write_offs_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    total_cost_cents = db.Column(db.Integer, nullable=True)
    movement_id = db.Column(db.Integer, db.ForeignKey("inventory_movements.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    movement = db.relationship("InventoryMovement")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "qty": self.qty,
            "reason": self.reason,
            "total_cost_cents": self.total_cost_cents,
            "movement_id": self.movement_id,
            "created_at": to_utc_z(self.created_at),
        }
