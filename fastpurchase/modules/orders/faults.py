"""
Orders Module - Fault Definitions
"""

from fastpurchase.faults import (
    ConflictFault,
    FaultDomain,
    InternalFault,
    ValidationFault,
)


ORDERS_DOMAIN = FaultDomain(
    name="orders",
    description="Order processing fault domain",
)


class InvalidOrderRequestFault(ValidationFault):
    domain = ORDERS_DOMAIN
    code = "INVALID_ORDER_REQUEST"

    def __init__(self):
        super().__init__(
            "Invalid request",
            ["Request body must be an array of products with productId and quantity"],
        )


class InvalidOrderItemFault(ValidationFault):
    domain = ORDERS_DOMAIN
    code = "INVALID_ORDER_ITEM"

    def __init__(self, index: int):
        super().__init__(
            "Invalid product data",
            ["Each product must have productId and quantity"],
            metadata={"index": index},
        )


class InvalidQuantityFault(ValidationFault):
    domain = ORDERS_DOMAIN
    code = "INVALID_QUANTITY"

    def __init__(self, index: int):
        super().__init__(
            "Invalid quantity",
            ["Quantity must be a positive integer"],
            metadata={"index": index},
        )


class InsufficientStockFault(ConflictFault):
    domain = ORDERS_DOMAIN
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, product_name: str, available: int, requested: int):
        super().__init__(
            "Insufficient stock",
            [
                f'Insufficient stock for product "{product_name}". '
                f"Available: {available}, Requested: {requested}"
            ],
            metadata={"product_id": product_id, "available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class OrderPersistenceFault(InternalFault):
    domain = ORDERS_DOMAIN
    code = "ORDER_PERSISTENCE_FAILED"

    def __init__(self, reason: str = ""):
        super().__init__(
            errors=["An error occurred while placing the order"],
            metadata={"reason": reason},
        )


class OrderHistoryFault(InternalFault):
    domain = ORDERS_DOMAIN
    code = "ORDER_HISTORY_FAILED"

    def __init__(self, reason: str = ""):
        super().__init__(
            errors=["An error occurred while retrieving order history"],
            metadata={"reason": reason},
        )
