# Overview: Exception taxonomy shared by the costing services and mapped to HTTP codes by the routes.

"""
Costing Errors

- ValidationError: bad input (empty items, non-positive qty, negative cost,
  unknown product). Not retried.
- NotFoundError: missing purchase, product or order.
- InvalidStateError: operation illegal for the current lifecycle state.
  State is deterministic, so never retried.
- InsufficientStockError: consumption exceeds FIFO stock. The caller decides
  whether to block the sale.
- TransactionConflictError: concurrent mutation detected and retries exhausted.
  Safe to retry the whole operation, never a part of it.
"""


class InventoryError(Exception):
    """Base class for costing service errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(InventoryError):
    """Raised when input data fails validation."""
    pass


class NotFoundError(InventoryError):
    """Raised when a purchase, product or order does not exist."""
    pass


class InvalidStateError(InventoryError):
    """Raised when an operation is invalid for the current document state."""
    pass


class InsufficientStockError(InventoryError):
    """Raised when FIFO lots cannot cover the requested quantity."""

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough stock for product {product_id}. Requested: {requested}, available: {available}",
            details={"product_id": product_id, "requested": requested, "available": available},
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class TransactionConflictError(InventoryError):
    """Raised when a concurrent writer kept winning and retries ran out."""
    pass
