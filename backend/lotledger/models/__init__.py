from .catalog import Product, Order, OrderItem, ORDER_STATUSES
from .purchasing import Purchase, PurchaseItem, PURCHASE_STATUSES
from .inventory import (
    InventoryLot,
    InventoryMovement,
    LotAllocation,
    WriteOff,
    MOVEMENT_TYPES,
    SOURCE_TYPES,
)

__all__ = [
    'Product', 'Order', 'OrderItem', 'ORDER_STATUSES',
    'Purchase', 'PurchaseItem', 'PURCHASE_STATUSES',
    'InventoryLot', 'InventoryMovement', 'LotAllocation', 'WriteOff',
    'MOVEMENT_TYPES', 'SOURCE_TYPES',
]
