# Overview: Read-side queries over the FIFO lot store.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import InventoryLot
from .catalog_service import get_product
from .concurrency import lock_for_update


def fifo_order(query):
    """Oldest received first; lot id breaks ties between lots of one posting."""
    return query.order_by(InventoryLot.received_at.asc(), InventoryLot.id.asc())


def get_available_lots(product_id: int, *, lock: bool = False) -> list[InventoryLot]:
    """Lots with qty_remaining > 0 in FIFO order, optionally row-locked."""
    query = db.session.query(InventoryLot).filter(
        InventoryLot.product_id == product_id,
        InventoryLot.qty_remaining > 0,
    )
    query = fifo_order(query)
    if lock:
        query = lock_for_update(query)
    return query.all()


def list_lots(product_id: int, *, include_exhausted: bool = True) -> list[InventoryLot]:
    get_product(product_id)

    query = db.session.query(InventoryLot).filter(InventoryLot.product_id == product_id)
    if not include_exhausted:
        query = query.filter(InventoryLot.qty_remaining > 0)
    return fifo_order(query).all()


def list_purchase_lots(purchase_id: int) -> list[InventoryLot]:
    query = db.session.query(InventoryLot).filter(InventoryLot.purchase_id == purchase_id)
    return fifo_order(query).all()


def get_stock_from_lots(product_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(InventoryLot.qty_remaining), 0)
    ).filter(
        InventoryLot.product_id == product_id,
    ).scalar()
    return int(total or 0)


def get_inventory_value_cents(product_id: int) -> int:
    """What the units in stock actually cost: SUM(qty_remaining * unit_cost)."""
    total = db.session.query(
        func.coalesce(func.sum(InventoryLot.qty_remaining * InventoryLot.unit_cost_cents), 0)
    ).filter(
        InventoryLot.product_id == product_id,
    ).scalar()
    return int(total or 0)


def lot_totals_by_product() -> dict[int, tuple[int, int]]:
    """product_id -> (qty_remaining, remaining value in cents)."""
    rows = db.session.query(
        InventoryLot.product_id,
        func.coalesce(func.sum(InventoryLot.qty_remaining), 0),
        func.coalesce(func.sum(InventoryLot.qty_remaining * InventoryLot.unit_cost_cents), 0),
    ).group_by(InventoryLot.product_id).all()
    return {product_id: (int(qty or 0), int(value or 0)) for product_id, qty, value in rows}
