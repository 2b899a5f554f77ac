# Overview: Narrow interface onto the product catalog used by the costing core.

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update
from .errors import NotFoundError


def product_exists(product_id: int) -> bool:
    return db.session.query(Product.id).filter_by(id=product_id).first() is not None


def missing_product_ids(product_ids: Iterable[int]) -> list[int]:
    """Return the ids from product_ids with no catalog row, in input order."""
    wanted = list(dict.fromkeys(product_ids))
    if not wanted:
        return []
    found = {
        row.id
        for row in db.session.query(Product.id).filter(Product.id.in_(wanted)).all()
    }
    return [pid for pid in wanted if pid not in found]


def get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def set_reference_cost(product_id: int, unit_cost_cents: int) -> Product:
    """Write the displayed reference cost back to the product. Caller commits."""
    product = get_product(product_id, lock=True)
    product.cost_price_cents = unit_cost_cents
    return product
