# Overview: Flask API routes for stock, movements, lots, write-offs, fulfillment and profit reporting.

"""
Warehouse Routes

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- from/to filters are inclusive.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import (
    fifo_service,
    lot_service,
    movement_service,
    order_service,
    reporting_service,
)
from ..services.errors import InventoryError
from ..time_utils import parse_iso_bound
from .errors import service_error_response, internal_error_response


warehouse_bp = Blueprint("warehouse", __name__, url_prefix="/api/warehouse")


def _parse_date_arg(name: str, *, upper: bool = False):
    """Returns (datetime | None, error response | None)."""
    raw = request.args.get(name)
    if not raw:
        return None, None
    value = parse_iso_bound(raw, upper=upper)
    if value is None:
        return None, (jsonify({"error": f"Invalid {name} format"}), 400)
    return value, None


@warehouse_bp.get("/stock")
def stock_route():
    return jsonify({"items": reporting_service.stock_overview()})


@warehouse_bp.get("/reconciliation")
def reconciliation_route():
    product_id = request.args.get("product_id", type=int)
    return jsonify({"items": reporting_service.reconcile(product_id)})


@warehouse_bp.get("/products/<int:product_id>/lots")
def product_lots_route(product_id: int):
    """
    Lots for a product in FIFO order.

    Query parameters:
    - include_exhausted: "false" hides lots with qty_remaining = 0 (default: true)
    """
    include_exhausted = request.args.get("include_exhausted", "true").lower() != "false"
    try:
        lots = lot_service.list_lots(product_id, include_exhausted=include_exhausted)
    except InventoryError as e:
        return service_error_response(e)

    return jsonify({
        "product_id": product_id,
        "items": [lot.to_dict() for lot in lots],
        "stock_from_lots": sum(lot.qty_remaining for lot in lots),
        "inventory_value_cents": sum(lot.qty_remaining * lot.unit_cost_cents for lot in lots),
    })


@warehouse_bp.get("/movements")
def list_movements_route():
    """
    Movement history.

    Query parameters:
    - from, to: ISO-8601 bounds on created_at
    - product_id, type (IN/OUT/ADJUST), source_type (PURCHASE/ORDER/MANUAL)
    - page, page_size
    """
    from_date, error = _parse_date_arg("from")
    if error:
        return error
    to_date, error = _parse_date_arg("to", upper=True)
    if error:
        return error

    try:
        result = movement_service.list_movements(
            from_date=from_date,
            to_date=to_date,
            product_id=request.args.get("product_id", type=int),
            movement_type=request.args.get("type") or None,
            source_type=request.args.get("source_type") or None,
            page=request.args.get("page", type=int),
            page_size=request.args.get("page_size", type=int),
        )
    except InventoryError as e:
        return service_error_response(e)

    result["items"] = [m.to_dict() for m in result["items"]]
    return jsonify(result)


@warehouse_bp.post("/movements/adjust")
def adjust_stock_route():
    """
    Manual stock correction (ADJUST movement, no lot).

    Request body:
    {
        "product_id": 1,        // required
        "quantity_delta": -2,   // required, non-zero
        "note": "..."           // optional
    }
    """
    data = request.get_json(silent=True) or {}

    product_id = data.get("product_id")
    if not product_id:
        return jsonify({"error": "product_id is required"}), 400
    if data.get("quantity_delta") is None:
        return jsonify({"error": "quantity_delta is required"}), 400

    try:
        movement = movement_service.adjust_stock(
            product_id=product_id,
            quantity_delta=data["quantity_delta"],
            note=data.get("note"),
        )
        return jsonify(movement.to_dict()), 201
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return internal_error_response()


@warehouse_bp.post("/writeoffs")
def create_write_off_route():
    """
    Write off stock at FIFO cost.

    Request body:
    {
        "product_id": 1,   // required
        "qty": 3,          // required, positive
        "reason": "..."    // optional
    }

    Returns:
        {id, product_id, qty, total_cost_cents, created_at, ...}
    """
    data = request.get_json(silent=True) or {}

    product_id = data.get("product_id")
    qty = data.get("qty")
    if not product_id:
        return jsonify({"error": "product_id is required"}), 400
    if qty is None:
        return jsonify({"error": "qty is required"}), 400

    try:
        record = fifo_service.write_off(
            product_id=product_id,
            quantity=qty,
            reason=data.get("reason"),
        )
        return jsonify(record.to_dict()), 201
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create write-off")
        return internal_error_response()


@warehouse_bp.post("/orders/<int:order_id>/fulfill")
def fulfill_order_route(order_id: int):
    """Consume FIFO stock for every line of an order and record COGS on the lines."""
    try:
        result = order_service.fulfill_order(order_id)
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to fulfill order")
        return internal_error_response()

    return jsonify({
        "order": result["order"].to_dict(),
        "cogs_cents": result["cogs_cents"],
        "consumptions": [c.to_dict() for c in result["consumptions"]],
    })


@warehouse_bp.get("/profit")
def profit_route():
    """
    Profit report for a period.

    Query parameters:
    - from, to: ISO-8601 (required)
    - status: Order status to count (default: DONE)
    """
    start, error = _parse_date_arg("from")
    if error:
        return error
    end, error = _parse_date_arg("to", upper=True)
    if error:
        return error
    if start is None or end is None:
        return jsonify({"error": "from and to are required"}), 400

    try:
        report = reporting_service.profit_report(
            start=start,
            end=end,
            status=request.args.get("status") or None,
        )
    except InventoryError as e:
        return service_error_response(e)

    return jsonify(report)
