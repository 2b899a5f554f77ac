# Overview: Order fulfillment hook that consumes FIFO stock once per order line.

from __future__ import annotations

from ..extensions import db
from ..models import Order
from .concurrency import lock_for_update, run_with_retry
from .errors import InvalidStateError, NotFoundError
from .fifo_service import _consume_inner


def get_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None or order.deleted_at is not None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def fulfill_order(order_id: int) -> dict:
    """
    Decrement stock for every line of an order.

    Each line is consumed with source ORDER, source_id = order id and
    source_line_id = line id, and the FIFO cost is stored on the line as
    cogs_cents. All lines commit together. Running it again for the same
    order returns the recorded consumptions without touching lots.

    Returns:
        {order, consumptions, cogs_cents}

    Raises:
        NotFoundError: If the order does not exist or was deleted
        InvalidStateError: If the order is CANCELED
        InsufficientStockError: If any line cannot be covered; nothing is consumed
    """
    def _op():
        order = get_order(order_id, lock=True)
        if order.status == "CANCELED":
            raise InvalidStateError("Cannot fulfill a CANCELED order")

        consumptions = []
        for item in order.items:
            result = _consume_inner(
                product_id=item.product_id,
                quantity=item.qty,
                source_type="ORDER",
                source_id=order.id,
                source_line_id=item.id,
                note=f"Order {order.id}",
            )
            item.cogs_cents = result.total_cost_cents
            consumptions.append(result)

        db.session.commit()
        return {
            "order": order,
            "consumptions": consumptions,
            "cogs_cents": sum(r.total_cost_cents for r in consumptions),
        }

    return run_with_retry(_op)
