"""
Orders Module - Services

Read side of the order ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastpurchase.faults import DatabaseConnectionFault, QueryFault
from fastpurchase.utils import from_cents

from .faults import OrderHistoryFault
from .repository import OrderRepository

logger = logging.getLogger("fastpurchase.orders")


@dataclass
class OrderRecordItem:
    product_id: str
    product_name: Optional[str]
    quantity: int
    price: Decimal

    @property
    def item_total(self) -> Decimal:
        return (self.price * self.quantity).quantize(Decimal("0.01"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
            "itemTotal": self.item_total,
        }


@dataclass
class OrderRecord:
    order_id: str
    description: Optional[str]
    total: Decimal
    status: str
    created_at: str
    updated_at: str
    items: List[OrderRecordItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "description": self.description,
            "totalPrice": self.total,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "items": [item.to_dict() for item in self.items],
        }


class OrderService:
    """Order history for one account."""

    def __init__(self, orders: OrderRepository):
        self.orders = orders

    async def get_order_history(self, account_id: str) -> List[OrderRecord]:
        """
        All orders of ``account_id``, newest first, each with its line items.

        Read-only: calling it twice without intervening writes returns
        equal results.
        """
        try:
            rows = await self.orders.list_for_user(account_id)
            items = await self.orders.items_for_orders([r["id"] for r in rows])
        except (QueryFault, DatabaseConnectionFault) as exc:
            logger.error(f"Order history for {account_id} failed: {exc}")
            raise OrderHistoryFault(str(exc)) from exc

        return [
            OrderRecord(
                order_id=row["id"],
                description=row["description"],
                total=from_cents(row["total_cents"]),
                status=row["status"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                items=[
                    OrderRecordItem(
                        product_id=item["product_id"],
                        product_name=item["product_name"],
                        quantity=item["quantity"],
                        price=from_cents(item["price_cents"]),
                    )
                    for item in items[row["id"]]
                ],
            )
            for row in rows
        ]
