# Overview: Maps costing service exceptions to JSON error responses.

from flask import jsonify

from ..services.errors import (
    InventoryError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    InsufficientStockError,
    TransactionConflictError,
)


STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (InsufficientStockError, 409),
    (TransactionConflictError, 503),
)


def service_error_response(exc: InventoryError):
    status = 400
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            status = code
            break
    body = {"error": str(exc)}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), status


def internal_error_response():
    return jsonify({"error": "Internal server error"}), 500
