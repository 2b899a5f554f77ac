# Overview: Service-layer operations for the append-only movement ledger.

"""
Movement Log

Every stock quantity change is one InventoryMovement row:
- IN: purchase posting, quantity > 0, source PURCHASE
- OUT: sale fulfillment or write-off, quantity < 0, source ORDER or MANUAL
- ADJUST: manual correction, quantity != 0, source MANUAL

Rows are never updated or deleted. Stock on hand for a product is
SUM(quantity) over its movements.

ADJUST movements create no lots. A positive adjustment is stock with no FIFO
cost basis until it is reconciled (see reporting_service.reconcile()); a
negative one takes uncosted units first and then consumes lots FIFO.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import InventoryMovement, MOVEMENT_TYPES, SOURCE_TYPES
from .catalog_service import get_product
from .concurrency import run_with_retry
from .errors import ValidationError
from .lot_service import get_stock_from_lots
from .paging import paginate


def append_movement(
    *,
    product_id: int,
    quantity: int,
    movement_type: str,
    source_type: str,
    source_id: str | int | None = None,
    source_line_id: str | int | None = None,
    cost_total_cents: int | None = None,
    note: str | None = None,
) -> InventoryMovement:
    """
    Add a movement to the current transaction (flush, no commit).

    Raises:
        ValidationError: If the sign of quantity does not match the type
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type. Must be one of: {', '.join(MOVEMENT_TYPES)}")
    if source_type not in SOURCE_TYPES:
        raise ValidationError(f"Invalid source type. Must be one of: {', '.join(SOURCE_TYPES)}")

    if movement_type == "IN" and quantity <= 0:
        raise ValidationError("IN movement quantity must be positive")
    if movement_type == "OUT" and quantity >= 0:
        raise ValidationError("OUT movement quantity must be negative")
    if movement_type == "ADJUST" and quantity == 0:
        raise ValidationError("ADJUST movement quantity cannot be zero")

    movement = InventoryMovement(
        product_id=product_id,
        quantity=quantity,
        type=movement_type,
        source_type=source_type,
        source_id=str(source_id) if source_id is not None else None,
        source_line_id=str(source_line_id) if source_line_id is not None else None,
        cost_total_cents=cost_total_cents,
        note=note or None,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def get_stock_from_movements(product_id: int) -> int:
    """Stock on hand as the signed sum of all movements."""
    total = db.session.query(
        func.coalesce(func.sum(InventoryMovement.quantity), 0)
    ).filter(
        InventoryMovement.product_id == product_id,
    ).scalar()
    return int(total or 0)


def stock_by_product_from_movements() -> dict[int, int]:
    rows = db.session.query(
        InventoryMovement.product_id,
        func.coalesce(func.sum(InventoryMovement.quantity), 0),
    ).group_by(InventoryMovement.product_id).all()
    return {product_id: int(total or 0) for product_id, total in rows}


def find_order_movement(order_id: str | int, order_line_id: str | int) -> InventoryMovement | None:
    return db.session.query(InventoryMovement).filter(
        InventoryMovement.source_type == "ORDER",
        InventoryMovement.source_id == str(order_id),
        InventoryMovement.source_line_id == str(order_line_id),
    ).first()


def adjust_stock(
    *,
    product_id: int,
    quantity_delta: int,
    note: str | None = None,
) -> InventoryMovement:
    """
    Record a manual stock correction as an ADJUST movement.

    A positive delta creates no lot. A negative delta first removes uncosted
    units (movement stock above lot stock), then takes the rest from lots
    FIFO; that cost is stored on the movement with LotAllocation rows, so
    lot stock and movement stock stay equal.

    Raises:
        NotFoundError: If the product does not exist
        ValidationError: If the delta is zero or would make stock negative
    """
    # Imported here: fifo_service builds on this module
    from .fifo_service import record_allocations, take_from_lots

    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise ValidationError("quantity_delta must be an integer")
    if quantity_delta == 0:
        raise ValidationError("quantity_delta cannot be zero")

    def _op():
        # Lock the product row to serialize against concurrent corrections
        get_product(product_id, lock=True)

        current = get_stock_from_movements(product_id)
        if current + quantity_delta < 0:
            raise ValidationError(
                "Adjustment would make stock negative",
                details={"current": current, "quantity_delta": quantity_delta},
            )

        allocations = []
        cost_total_cents = None
        if quantity_delta < 0:
            uncosted = max(current - get_stock_from_lots(product_id), 0)
            from_lots = max(-quantity_delta - uncosted, 0)
            if from_lots:
                allocations, cost_total_cents = take_from_lots(product_id, from_lots)

        movement = append_movement(
            product_id=product_id,
            quantity=quantity_delta,
            movement_type="ADJUST",
            source_type="MANUAL",
            cost_total_cents=cost_total_cents,
            note=note,
        )
        record_allocations(movement, allocations)
        db.session.commit()
        return movement

    return run_with_retry(_op)


def list_movements(
    *,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    product_id: int | None = None,
    movement_type: str | None = None,
    source_type: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict:
    """
    Movement history, newest first.

    Date filters are inclusive on created_at.

    Returns:
        {items, total, page, page_size}
    """
    if movement_type and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid type. Must be one of: {', '.join(MOVEMENT_TYPES)}")
    if source_type and source_type not in SOURCE_TYPES:
        raise ValidationError(f"Invalid source_type. Must be one of: {', '.join(SOURCE_TYPES)}")

    query = db.session.query(InventoryMovement)

    if product_id:
        query = query.filter(InventoryMovement.product_id == product_id)
    if movement_type:
        query = query.filter(InventoryMovement.type == movement_type)
    if source_type:
        query = query.filter(InventoryMovement.source_type == source_type)
    if from_date:
        query = query.filter(InventoryMovement.created_at >= from_date)
    if to_date:
        query = query.filter(InventoryMovement.created_at <= to_date)

    query = query.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
    return paginate(query, page, page_size)
