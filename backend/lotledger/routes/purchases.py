# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

"""
Purchase Routes

Draft purchases are created and edited here, then posted (stock in, FIFO lots
created) or canceled. Authentication is handled in front of this service.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import purchase_service
from ..services.errors import InventoryError
from ..time_utils import to_utc_z
from .errors import service_error_response, internal_error_response


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/warehouse/purchases")


@purchases_bp.get("")
def list_purchases_route():
    """
    List purchases.

    Query parameters:
    - page: Page number (default: 1)
    - page_size: Page size (default: 20, max: 100)
    - status: DRAFT, POSTED or CANCELED
    - search: Matches supplier or comment

    Returns:
        {items: Purchase[], total, page, page_size}
    """
    try:
        result = purchase_service.list_purchases(
            page=request.args.get("page", type=int),
            page_size=request.args.get("page_size", type=int),
            status=request.args.get("status") or None,
            search=request.args.get("search") or None,
        )
    except InventoryError as e:
        return service_error_response(e)

    result["items"] = [p.to_dict(include_items=False) for p in result["items"]]
    return jsonify(result)


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify(purchase.to_dict())
    except InventoryError as e:
        return service_error_response(e)


@purchases_bp.post("")
def create_purchase_route():
    """
    Create a DRAFT purchase.

    Request body:
    {
        "supplier": "...",   // optional
        "comment": "...",    // optional
        "items": [{"product_id": 1, "qty": 10, "unit_cost_cents": 500}]  // required, non-empty
    }

    Returns:
        Created Purchase object
    """
    data = request.get_json(silent=True) or {}

    try:
        purchase = purchase_service.create_draft(
            data.get("items"),
            supplier=data.get("supplier"),
            comment=data.get("comment"),
        )
        return jsonify(purchase.to_dict()), 201
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return internal_error_response()


@purchases_bp.patch("/<int:purchase_id>")
def update_purchase_route(purchase_id: int):
    """
    Update a DRAFT purchase.

    Only keys present in the body are changed. "items" replaces the whole set.
    """
    data = request.get_json(silent=True) or {}

    changes = {
        key: data[key]
        for key in ("supplier", "comment", "items")
        if key in data
    }

    try:
        purchase = purchase_service.update_draft(purchase_id, **changes)
        return jsonify(purchase.to_dict())
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return internal_error_response()


@purchases_bp.post("/<int:purchase_id>/post")
def post_purchase_route(purchase_id: int):
    """
    Post a DRAFT purchase to stock.

    Request body:
    {
        "update_cost_price": false  // optional: write reference cost to products
    }

    Returns:
        {id, status, posted_at, movements_created, lots_created}
    """
    data = request.get_json(silent=True) or {}

    update_cost_price = data.get("update_cost_price", False)
    if not isinstance(update_cost_price, bool):
        return jsonify({"error": "update_cost_price must be a boolean"}), 400

    try:
        result = purchase_service.post_purchase(
            purchase_id,
            update_cost_price=update_cost_price,
        )
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to post purchase")
        return internal_error_response()

    current_app.logger.info(
        "Posted purchase %s: %s lots, %s movements",
        purchase_id, result["lots_created"], result["movements_created"],
    )
    return jsonify({
        "id": result["purchase"].id,
        "status": result["purchase"].status,
        "posted_at": to_utc_z(result["posted_at"]),
        "movements_created": result["movements_created"],
        "lots_created": result["lots_created"],
    })


@purchases_bp.post("/<int:purchase_id>/cancel")
def cancel_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.cancel_purchase(purchase_id)
        return jsonify({"id": purchase.id, "status": purchase.status})
    except InventoryError as e:
        return service_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel purchase")
        return internal_error_response()
