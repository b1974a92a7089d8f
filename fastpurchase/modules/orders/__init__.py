"""
Orders Module

Components:
- OrderEngine: atomic order placement (validate, decrement, record)
- OrderService: order history reads
- OrderRepository: orders / order_items tables
- OrderController: /orders routes
"""

from .controllers import OrderController
from .engine import (
    OrderEngine,
    OrderLine,
    PlacedOrder,
    PlacedOrderItem,
    validate_order_items,
)
from .faults import (
    InsufficientStockFault,
    InvalidOrderItemFault,
    InvalidOrderRequestFault,
    InvalidQuantityFault,
    OrderHistoryFault,
    OrderPersistenceFault,
)
from .repository import OrderRepository
from .services import OrderRecord, OrderRecordItem, OrderService

__all__ = [
    "OrderController",
    "OrderEngine",
    "OrderLine",
    "PlacedOrder",
    "PlacedOrderItem",
    "validate_order_items",
    "OrderRepository",
    "OrderService",
    "OrderRecord",
    "OrderRecordItem",
    "InsufficientStockFault",
    "InvalidOrderItemFault",
    "InvalidOrderRequestFault",
    "InvalidQuantityFault",
    "OrderHistoryFault",
    "OrderPersistenceFault",
]
