# Overview: Service-layer reporting over movements and lots: profit, stock overview, reconciliation.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import InventoryMovement, Order, Product, ORDER_STATUSES
from ..time_utils import to_utc_z
from .errors import ValidationError
from .lot_service import lot_totals_by_product
from .movement_service import stock_by_product_from_movements


def _percent(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    value = Decimal(numerator) * 100 / Decimal(denominator)
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def profit_report(
    *,
    start: datetime,
    end: datetime,
    status: str | None = None,
) -> dict:
    """
    Revenue, FIFO COGS and packaging for orders in a period.

    Counts OUT/ORDER movements whose order is not deleted, has the given
    status (default PROFIT_DEFAULT_ORDER_STATUS) and was created within
    [start, end]. COGS is the cost recorded on each movement at consumption
    time, never re-derived.

    Per product profit is revenue - cogs. The total gross_profit also deducts
    packaging.
    """
    if start is None or end is None:
        raise ValidationError("start and end are required")
    if start > end:
        raise ValidationError("start must not be after end")

    status = status or current_app.config.get("PROFIT_DEFAULT_ORDER_STATUS", "DONE")
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")

    orders = db.session.query(Order).filter(
        Order.deleted_at.is_(None),
        Order.status == status,
        Order.created_at >= start,
        Order.created_at <= end,
    ).all()

    order_ids = [str(order.id) for order in orders]
    lines_by_id = {
        str(item.id): item
        for order in orders
        for item in order.items
    }

    movements = []
    if order_ids:
        movements = db.session.query(InventoryMovement).filter(
            InventoryMovement.type == "OUT",
            InventoryMovement.source_type == "ORDER",
            InventoryMovement.source_id.in_(order_ids),
        ).order_by(InventoryMovement.id.asc()).all()

    revenue = 0
    cogs = 0
    packaging = 0
    products: dict[int, dict] = {}

    for movement in movements:
        qty = -movement.quantity
        line = lines_by_id.get(movement.source_line_id)
        if line is None:
            # Unlinked consumption: first line of that order for the product
            line = next(
                (
                    item for item in lines_by_id.values()
                    if str(item.order_id) == movement.source_id and item.product_id == movement.product_id
                ),
                None,
            )

        item_revenue = qty * line.sale_price_cents if line is not None else 0
        item_packaging = qty * (line.packaging_cost_cents or 0) if line is not None else 0
        item_cogs = movement.cost_total_cents or 0

        revenue += item_revenue
        cogs += item_cogs
        packaging += item_packaging

        row = products.get(movement.product_id)
        if row is None:
            row = products[movement.product_id] = {
                "product_id": movement.product_id,
                "title": movement.product.title if movement.product is not None else None,
                "quantity": 0,
                "revenue_cents": 0,
                "cogs_cents": 0,
                "packaging_cents": 0,
            }
        row["quantity"] += qty
        row["revenue_cents"] += item_revenue
        row["cogs_cents"] += item_cogs
        row["packaging_cents"] += item_packaging

    breakdown = []
    for row in products.values():
        row["profit_cents"] = row["revenue_cents"] - row["cogs_cents"]
        row["margin_percent"] = _percent(row["profit_cents"], row["revenue_cents"])
        breakdown.append(row)
    breakdown.sort(key=lambda r: (-r["profit_cents"], r["product_id"]))

    gross_profit = revenue - cogs - packaging
    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "status": status,
        "revenue_cents": revenue,
        "cogs_cents": cogs,
        "packaging_cents": packaging,
        "gross_profit_cents": gross_profit,
        "margin_percent": _percent(gross_profit, revenue),
        "order_count": len(orders),
        "product_breakdown": breakdown,
    }


def stock_overview() -> list[dict]:
    """Stock, FIFO value and reference unit economics for every active product."""
    movement_stock = stock_by_product_from_movements()
    lot_totals = lot_totals_by_product()

    products = db.session.query(Product).filter(
        Product.is_active.is_(True),
    ).order_by(Product.title.asc(), Product.id.asc()).all()

    rows = []
    for product in products:
        lot_qty, lot_value = lot_totals.get(product.id, (0, 0))
        if product.cost_price_cents is not None or product.packaging_cost_cents is not None:
            unit_profit = (
                product.price_cents
                - (product.cost_price_cents or 0)
                - (product.packaging_cost_cents or 0)
            )
            margin = _percent(unit_profit, product.price_cents) if product.price_cents > 0 else None
        else:
            unit_profit = None
            margin = None

        rows.append({
            "product_id": product.id,
            "title": product.title,
            "sku": product.sku,
            "current_stock": movement_stock.get(product.id, 0),
            "lot_stock": lot_qty,
            "inventory_value_cents": lot_value,
            "cost_price_cents": product.cost_price_cents,
            "packaging_cost_cents": product.packaging_cost_cents,
            "price_cents": product.price_cents,
            "unit_profit_cents": unit_profit,
            "margin_percent": margin,
        })
    return rows


def reconcile(product_id: int | None = None) -> list[dict]:
    """
    Compare movement-derived stock with lot-derived stock per product.

    uncosted_quantity > 0 means stock added by ADJUST movements that has no
    lot, and therefore no FIFO cost basis.
    """
    movement_stock = stock_by_product_from_movements()
    lot_totals = lot_totals_by_product()

    product_ids = sorted(set(movement_stock) | set(lot_totals))
    if product_id is not None:
        product_ids = [product_id]

    titles = dict(
        db.session.query(Product.id, Product.title).filter(Product.id.in_(product_ids)).all()
    ) if product_ids else {}

    rows = []
    for pid in product_ids:
        from_movements = movement_stock.get(pid, 0)
        from_lots = lot_totals.get(pid, (0, 0))[0]
        rows.append({
            "product_id": pid,
            "title": titles.get(pid),
            "stock_from_movements": from_movements,
            "stock_from_lots": from_lots,
            "uncosted_quantity": from_movements - from_lots,
            "balanced": from_movements == from_lots,
        })
    return rows
