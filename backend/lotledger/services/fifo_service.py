# Overview: Service-layer FIFO consumption of cost lots for sales and write-offs.

"""
FIFO Consumption Engine

consume() removes stock oldest cost first:
1. Lock the product row and its lots with qty_remaining > 0, ordered by
   (received_at, id)
2. Reject with InsufficientStockError, touching nothing, if the lots or the
   movement ledger hold less than the requested quantity
3. Take min(lot.qty_remaining, still_needed) from each lot in order,
   accumulating taken * lot.unit_cost_cents
4. Append one OUT movement carrying the total cost, plus one LotAllocation
   per lot touched

All of it happens in one transaction. version_id on InventoryLot turns a
concurrent double spend into StaleDataError, which run_with_retry retries from
scratch.

ORDER consumption keyed by (order id, order line id) is idempotent: a retry
returns the already recorded result.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..extensions import db
from ..models import InventoryMovement, LotAllocation, WriteOff
from .catalog_service import get_product
from .concurrency import run_with_retry
from .errors import InsufficientStockError, ValidationError
from .lot_service import get_available_lots
from .movement_service import append_movement, find_order_movement, get_stock_from_movements


CONSUMING_SOURCE_TYPES = ("ORDER", "MANUAL")


@dataclass(frozen=True)
class Allocation:
    lot_id: int
    qty: int
    unit_cost_cents: int

    @property
    def cost_cents(self) -> int:
        return self.qty * self.unit_cost_cents


@dataclass
class ConsumptionResult:
    movement: InventoryMovement
    total_cost_cents: int
    allocations: list[Allocation] = field(default_factory=list)
    # True when an earlier identical ORDER consumption was returned as-is
    replayed: bool = False

    @property
    def quantity(self) -> int:
        return sum(a.qty for a in self.allocations)

    def to_dict(self) -> dict:
        return {
            "movement": self.movement.to_dict(),
            "total_cost_cents": self.total_cost_cents,
            "allocations": [
                {"lot_id": a.lot_id, "qty": a.qty, "unit_cost_cents": a.unit_cost_cents}
                for a in self.allocations
            ],
            "replayed": self.replayed,
        }


def _validate_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("Quantity must be positive")


def _replay(movement: InventoryMovement, product_id: int, quantity: int) -> ConsumptionResult:
    if movement.product_id != product_id or -movement.quantity != quantity:
        raise ValidationError(
            "Order line already consumed with a different product or quantity",
            details={"movement_id": movement.id},
        )
    return ConsumptionResult(
        movement=movement,
        total_cost_cents=movement.cost_total_cents or 0,
        allocations=[
            Allocation(lot_id=a.lot_id, qty=a.qty, unit_cost_cents=a.unit_cost_cents)
            for a in movement.allocations
        ],
        replayed=True,
    )


def allocate_fifo(lots, quantity: int) -> list[Allocation]:
    """
    Plan FIFO takes over lots already in FIFO order. Pure.

    Raises:
        ValueError: If the lots cannot cover quantity
    """
    remaining = quantity
    allocations = []
    for lot in lots:
        if remaining <= 0:
            break
        take = min(lot.qty_remaining, remaining)
        if take <= 0:
            continue
        allocations.append(Allocation(lot_id=lot.id, qty=take, unit_cost_cents=lot.unit_cost_cents))
        remaining -= take

    if remaining > 0:
        raise ValueError(f"lots short by {remaining}")
    return allocations


def take_from_lots(product_id: int, quantity: int) -> tuple[list[Allocation], int]:
    """
    Decrement the product's open lots FIFO by quantity. No movement, no commit.

    The caller holds the product row lock.

    Returns:
        (allocations, total_cost_cents)

    Raises:
        InsufficientStockError: If the lots hold less than quantity; nothing is changed
    """
    lots = get_available_lots(product_id, lock=True)
    available = sum(lot.qty_remaining for lot in lots)
    if available < quantity:
        raise InsufficientStockError(product_id, quantity, available)

    allocations = allocate_fifo(lots, quantity)
    lots_by_id = {lot.id: lot for lot in lots}

    total_cost_cents = 0
    for allocation in allocations:
        lot = lots_by_id[allocation.lot_id]
        lot.qty_remaining = lot.qty_remaining - allocation.qty
        if lot.qty_remaining < 0:
            raise RuntimeError(f"Lot {lot.id} has negative qty_remaining after allocation")
        total_cost_cents += allocation.cost_cents

    # Lot versions are checked before any movement insert, so a lost race is a
    # retryable StaleDataError rather than a duplicate source line
    db.session.flush()
    return allocations, total_cost_cents


def record_allocations(movement: InventoryMovement, allocations: list[Allocation]) -> None:
    for allocation in allocations:
        db.session.add(LotAllocation(
            movement_id=movement.id,
            lot_id=allocation.lot_id,
            qty=allocation.qty,
            unit_cost_cents=allocation.unit_cost_cents,
        ))
    db.session.flush()


def _consume_inner(
    *,
    product_id: int,
    quantity: int,
    source_type: str,
    source_id: str | int | None = None,
    source_line_id: str | int | None = None,
    note: str | None = None,
) -> ConsumptionResult:
    """Core consumption without retry or commit.

    Called by consume(), write_off() and order fulfillment.
    """
    _validate_quantity(quantity)
    if source_type not in CONSUMING_SOURCE_TYPES:
        raise ValidationError(
            f"Invalid source_type for consumption. Must be one of: {', '.join(CONSUMING_SOURCE_TYPES)}"
        )

    if source_type == "ORDER" and source_id is not None and source_line_id is not None:
        existing = find_order_movement(source_id, source_line_id)
        if existing is not None:
            return _replay(existing, product_id, quantity)

    # Product row lock serializes consumers of the same product
    get_product(product_id, lock=True)

    # Movement stock must cover the sale too, or the ledger would go negative
    on_hand = get_stock_from_movements(product_id)
    if on_hand < quantity:
        raise InsufficientStockError(product_id, quantity, max(on_hand, 0))

    allocations, total_cost_cents = take_from_lots(product_id, quantity)

    movement = append_movement(
        product_id=product_id,
        quantity=-quantity,
        movement_type="OUT",
        source_type=source_type,
        source_id=source_id,
        source_line_id=source_line_id,
        cost_total_cents=total_cost_cents,
        note=note,
    )
    record_allocations(movement, allocations)

    return ConsumptionResult(
        movement=movement,
        total_cost_cents=total_cost_cents,
        allocations=allocations,
    )


def consume(
    *,
    product_id: int,
    quantity: int,
    source_type: str,
    source_id: str | int | None = None,
    note: str | None = None,
    source_line_id: str | int | None = None,
    commit: bool = True,
) -> ConsumptionResult:
    """
    Remove quantity units of a product, oldest cost first.

    Args:
        product_id: Product to consume
        quantity: Units to remove (> 0)
        source_type: ORDER or MANUAL
        source_id: Originating order / write-off id
        note: Free text stored on the OUT movement
        source_line_id: Order line id; makes ORDER consumption idempotent
        commit: Commit when done (False leaves the caller's transaction open)

    Returns:
        ConsumptionResult with total cost and per-lot allocations

    Raises:
        ValidationError: If quantity or source_type is invalid
        NotFoundError: If the product does not exist
        InsufficientStockError: If lots hold less than quantity
        TransactionConflictError: If concurrent consumers kept conflicting
    """
    def _op():
        result = _consume_inner(
            product_id=product_id,
            quantity=quantity,
            source_type=source_type,
            source_id=source_id,
            source_line_id=source_line_id,
            note=note,
        )
        if commit:
            db.session.commit()
        else:
            db.session.flush()
        return result

    return run_with_retry(_op)


def write_off(*, product_id: int, quantity: int, reason: str | None = None) -> WriteOff:
    """
    Write off damaged or lost stock, costed FIFO.

    Returns:
        WriteOff with total_cost_cents and the OUT movement it produced
    """
    _validate_quantity(quantity)
    reason = (reason or "").strip() or None

    def _op():
        get_product(product_id)

        record = WriteOff(product_id=product_id, qty=quantity, reason=reason)
        db.session.add(record)
        db.session.flush()

        result = _consume_inner(
            product_id=product_id,
            quantity=quantity,
            source_type="MANUAL",
            source_id=record.id,
            note=reason,
        )

        record.total_cost_cents = result.total_cost_cents
        record.movement_id = result.movement.id
        db.session.commit()
        return record

    return run_with_retry(_op)
