# Overview: Service-layer operations for supplier purchases; owns the draft/post/cancel lifecycle.

"""
Purchase Service

LIFECYCLE:
1. DRAFT: Created with at least one item; supplier, comment and items editable
2. POSTED: Lots and IN movements created in the same transaction (terminal)
3. CANCELED: Abandoned draft, no stock effect (terminal)

DRAFT -> POSTED and DRAFT -> CANCELED are the only transitions.

This is the only module that creates InventoryLot rows. Posting builds a
PostingResult in memory first and then writes it in one transaction, so a
failure at any step leaves no lots, no movements and a DRAFT purchase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from typing import Iterable, Mapping

from sqlalchemy import or_

from ..extensions import db
from ..models import InventoryLot, Purchase, PurchaseItem, PURCHASE_STATUSES
from ..time_utils import utcnow
from .catalog_service import missing_product_ids, set_reference_cost
from .concurrency import lock_for_update, run_with_retry
from .errors import InvalidStateError, NotFoundError, ValidationError
from .movement_service import append_movement
from .paging import paginate


STATUS_DRAFT = "DRAFT"
STATUS_POSTED = "POSTED"
STATUS_CANCELED = "CANCELED"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Distinguishes "not provided" from an explicit None in update_draft
UNSET = _Unset()


@dataclass(frozen=True)
class PurchaseLine:
    product_id: int
    qty: int
    unit_cost_cents: int


@dataclass(frozen=True)
class LotSpec:
    product_id: int
    qty: int
    unit_cost_cents: int


@dataclass(frozen=True)
class MovementSpec:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class PostingResult:
    """Everything a posting writes, assembled before any write happens."""
    purchase_id: int
    posted_at: datetime
    lots: tuple[LotSpec, ...]
    movements: tuple[MovementSpec, ...]
    cost_price_updates: tuple[tuple[int, int], ...]


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_purchase_items(items) -> list[PurchaseLine]:
    """
    Validate purchase line items. Pure: no database access.

    Used by both create_draft and update_draft so the rules cannot drift.

    Raises:
        ValidationError: If items is empty or any line is malformed
    """
    if not items:
        raise ValidationError("Purchase must have at least one item")

    lines = []
    for index, item in enumerate(items):
        if isinstance(item, PurchaseLine):
            item = {
                "product_id": item.product_id,
                "qty": item.qty,
                "unit_cost_cents": item.unit_cost_cents,
            }
        if not isinstance(item, Mapping):
            raise ValidationError(f"Item {index} must be an object")

        product_id = item.get("product_id")
        qty = item.get("qty")
        unit_cost_cents = item.get("unit_cost_cents")

        if not _is_int(product_id):
            raise ValidationError(f"Item {index}: product_id is required")
        if not _is_int(qty):
            raise ValidationError(f"Item {index}: qty must be an integer")
        if qty <= 0:
            raise ValidationError("Quantity must be positive", details={"item": index})
        if not _is_int(unit_cost_cents):
            raise ValidationError(f"Item {index}: unit_cost_cents must be an integer")
        if unit_cost_cents < 0:
            raise ValidationError("Unit cost cannot be negative", details={"item": index})

        lines.append(PurchaseLine(product_id=product_id, qty=qty, unit_cost_cents=unit_cost_cents))

    return lines


def _validated_lines(items) -> list[PurchaseLine]:
    lines = validate_purchase_items(items)
    missing = missing_product_ids(line.product_id for line in lines)
    if missing:
        raise ValidationError(
            "One or more products not found",
            details={"product_ids": missing},
        )
    return lines


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _last_cost_wins(costs: dict[int, int], line) -> dict[int, int]:
    return {**costs, line.product_id: line.unit_cost_cents}


def resolve_cost_price_updates(lines: Iterable) -> tuple[tuple[int, int], ...]:
    """
    Reference cost per product after a posting.

    Folds over the lines in list order; a later line for the same product
    overrides an earlier one. This is a deliberate policy for the displayed
    reference cost only and has no effect on FIFO costing.
    """
    costs = reduce(_last_cost_wins, lines, {})
    return tuple(costs.items())


def build_posting(purchase: Purchase, *, posted_at: datetime, update_cost_price: bool) -> PostingResult:
    """Assemble the lots, IN movements and cost updates for a purchase. No writes."""
    lots = tuple(
        LotSpec(product_id=item.product_id, qty=item.qty, unit_cost_cents=item.unit_cost_cents)
        for item in purchase.items
    )
    movements = tuple(
        MovementSpec(product_id=item.product_id, quantity=item.qty)
        for item in purchase.items
    )
    cost_updates = resolve_cost_price_updates(purchase.items) if update_cost_price else ()

    return PostingResult(
        purchase_id=purchase.id,
        posted_at=posted_at,
        lots=lots,
        movements=movements,
        cost_price_updates=cost_updates,
    )


def _apply_posting(purchase: Purchase, posting: PostingResult) -> None:
    """Write a PostingResult into the current transaction. Caller commits."""
    for spec in posting.movements:
        append_movement(
            product_id=spec.product_id,
            quantity=spec.quantity,
            movement_type="IN",
            source_type="PURCHASE",
            source_id=purchase.id,
        )

    for spec in posting.lots:
        db.session.add(InventoryLot(
            product_id=spec.product_id,
            purchase_id=purchase.id,
            unit_cost_cents=spec.unit_cost_cents,
            qty_received=spec.qty,
            qty_remaining=spec.qty,
            received_at=posting.posted_at,
            created_at=posting.posted_at,
        ))
    db.session.flush()

    purchase.status = STATUS_POSTED
    purchase.posted_at = posting.posted_at

    for product_id, unit_cost_cents in posting.cost_price_updates:
        set_reference_cost(product_id, unit_cost_cents)

    db.session.flush()


def get_purchase(purchase_id: int, *, lock: bool = False) -> Purchase:
    """
    Get a purchase by ID.

    Raises:
        NotFoundError: If not found
    """
    query = db.session.query(Purchase).filter_by(id=purchase_id)
    if lock:
        query = lock_for_update(query)
    purchase = query.first()
    if purchase is None:
        raise NotFoundError(f"Purchase with id {purchase_id} not found")
    return purchase


def create_draft(
    items,
    *,
    supplier: str | None = None,
    comment: str | None = None,
) -> Purchase:
    """
    Create a DRAFT purchase with its line items.

    Args:
        items: [{product_id, qty, unit_cost_cents}, ...], at least one
        supplier: Optional supplier name
        comment: Optional free text

    Returns:
        Created Purchase in DRAFT

    Raises:
        ValidationError: Empty items, qty <= 0, negative cost or unknown product
    """
    def _op():
        lines = _validated_lines(items)

        purchase = Purchase(
            supplier=_clean_text(supplier),
            comment=_clean_text(comment),
            status=STATUS_DRAFT,
        )
        purchase.items = [
            PurchaseItem(
                product_id=line.product_id,
                qty=line.qty,
                unit_cost_cents=line.unit_cost_cents,
            )
            for line in lines
        ]
        db.session.add(purchase)
        db.session.commit()
        return purchase

    return run_with_retry(_op)


def update_draft(
    purchase_id: int,
    *,
    supplier=UNSET,
    comment=UNSET,
    items=UNSET,
) -> Purchase:
    """
    Patch a DRAFT purchase.

    When items is given, the whole item set is replaced: every existing line
    is deleted and the new lines inserted in the same transaction.

    Raises:
        NotFoundError: If the purchase does not exist
        InvalidStateError: If the purchase is not DRAFT
        ValidationError: If the new items are invalid
    """
    def _op():
        purchase = get_purchase(purchase_id, lock=True)

        if purchase.status != STATUS_DRAFT:
            raise InvalidStateError(
                f"Cannot edit {purchase.status} purchase. Only DRAFT purchases can be edited."
            )

        if items is not UNSET:
            lines = _validated_lines(items)

            purchase.items.clear()
            db.session.flush()
            purchase.items.extend(
                PurchaseItem(
                    product_id=line.product_id,
                    qty=line.qty,
                    unit_cost_cents=line.unit_cost_cents,
                )
                for line in lines
            )

        if supplier is not UNSET:
            purchase.supplier = _clean_text(supplier)
        if comment is not UNSET:
            purchase.comment = _clean_text(comment)

        purchase.updated_at = utcnow()
        db.session.commit()
        return purchase

    return run_with_retry(_op)


def post_purchase(purchase_id: int, *, update_cost_price: bool = False) -> dict:
    """
    Post a DRAFT purchase to stock.

    In one transaction: one lot and one IN movement per line item, status
    POSTED with posted_at, and (optionally) product reference costs.

    Args:
        purchase_id: Purchase to post
        update_cost_price: Write each product's reference cost from the
            last line for that product

    Returns:
        {purchase, posted_at, lots_created, movements_created}

    Raises:
        NotFoundError: If the purchase does not exist
        InvalidStateError: If not DRAFT or it has no items
    """
    def _op():
        purchase = get_purchase(purchase_id, lock=True)

        if purchase.status != STATUS_DRAFT:
            raise InvalidStateError(
                f"Cannot post {purchase.status} purchase. Only DRAFT purchases can be posted."
            )
        if not purchase.items:
            raise InvalidStateError("Purchase must have items to post")

        posting = build_posting(
            purchase,
            posted_at=utcnow(),
            update_cost_price=update_cost_price,
        )
        _apply_posting(purchase, posting)

        db.session.commit()
        return {
            "purchase": purchase,
            "posted_at": posting.posted_at,
            "lots_created": len(posting.lots),
            "movements_created": len(posting.movements),
        }

    return run_with_retry(_op)


def cancel_purchase(purchase_id: int) -> Purchase:
    """
    Cancel a DRAFT purchase.

    Raises:
        NotFoundError: If the purchase does not exist
        InvalidStateError: If already POSTED or CANCELED
    """
    def _op():
        purchase = get_purchase(purchase_id, lock=True)

        if purchase.status == STATUS_POSTED:
            raise InvalidStateError("Cannot cancel a POSTED purchase")
        if purchase.status == STATUS_CANCELED:
            raise InvalidStateError("Purchase is already canceled")

        purchase.status = STATUS_CANCELED
        purchase.updated_at = utcnow()
        db.session.commit()
        return purchase

    return run_with_retry(_op)


def list_purchases(
    *,
    page: int | None = None,
    page_size: int | None = None,
    status: str | None = None,
    search: str | None = None,
) -> dict:
    """
    List purchases, newest first.

    search matches supplier or comment, case-insensitive.

    Returns:
        {items, total, page, page_size}
    """
    if status and status not in PURCHASE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(PURCHASE_STATUSES)}")

    query = db.session.query(Purchase)

    if status:
        query = query.filter(Purchase.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Purchase.supplier.ilike(pattern),
            Purchase.comment.ilike(pattern),
        ))

    query = query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
    return paginate(query, page, page_size)
