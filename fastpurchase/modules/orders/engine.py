"""
Orders Module - Order transaction engine.

``OrderEngine.place_order`` turns a cart into an order as one atomic unit:

1. Validate the cart shape (no store access).
2. Inside one ``BEGIN IMMEDIATE`` transaction, for each item in caller
   order: read the product, check stock, price the line and take the
   units with a conditional ``UPDATE ... WHERE stock >= ?``.
3. Insert the order row and one line item per requested item.
4. Commit, then invalidate the catalog response cache.

Any fault rolls the whole unit back; storage errors surface as
``OrderPersistenceFault`` with the detail kept in logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

from fastpurchase.cache import CacheService
from fastpurchase.db import Database
from fastpurchase.faults import DatabaseConnectionFault, Fault, QueryFault
from fastpurchase.utils import from_cents, new_id, utcnow_iso

from ..products.faults import ProductNotFoundFault
from ..products.repository import ProductRepository
from .faults import (
    InsufficientStockFault,
    InvalidOrderItemFault,
    InvalidOrderRequestFault,
    InvalidQuantityFault,
    OrderPersistenceFault,
)
from .repository import OrderRepository

logger = logging.getLogger("fastpurchase.orders")

CATALOG_CACHE_PREFIX = "/products"


@dataclass(frozen=True)
class OrderLine:
    """One validated cart entry."""
    product_id: str
    quantity: int


@dataclass
class PlacedOrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.unit_price,
            "itemTotal": self.line_total,
        }


@dataclass
class PlacedOrder:
    order_id: str
    user_id: str
    total: Decimal
    status: str
    created_at: str
    items: List[PlacedOrderItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "userId": self.user_id,
            "totalPrice": self.total,
            "status": self.status,
            "createdAt": self.created_at,
            "items": [item.to_dict() for item in self.items],
        }


def validate_order_items(items: Any) -> List[OrderLine]:
    """
    Validate a cart body: a non-empty list of ``{productId, quantity}``.

    Raises:
        InvalidOrderRequestFault: Not a list, or an empty one
        InvalidOrderItemFault: An entry lacks a usable productId or quantity
        InvalidQuantityFault: A quantity is not an integer >= 1
    """
    if not isinstance(items, list) or not items:
        raise InvalidOrderRequestFault()

    lines: List[OrderLine] = []
    for index, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise InvalidOrderItemFault(index)
        product_id = entry.get("productId")
        quantity = entry.get("quantity")
        if not isinstance(product_id, str) or not product_id.strip() or quantity is None:
            raise InvalidOrderItemFault(index)
        # bool is an int subclass; true must not read as quantity 1
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantityFault(index)
        lines.append(OrderLine(product_id=product_id.strip(), quantity=quantity))
    return lines


class OrderEngine:
    """
    Places orders.

    Concurrency: the database serializes transactions on its single
    connection and ``BEGIN IMMEDIATE`` holds SQLite's write lock for the
    whole unit, so no two placements interleave their read-check-decrement
    steps. The conditional decrement still refuses to drive stock below
    zero if some other writer got there first.
    """

    def __init__(
        self,
        db: Database,
        products: ProductRepository,
        orders: OrderRepository,
        cache: CacheService,
    ):
        self.db = db
        self.products = products
        self.orders = orders
        self.cache = cache

    async def place_order(self, account_id: str, items: Any) -> PlacedOrder:
        lines = validate_order_items(items)

        try:
            async with self.db.transaction():
                placed = await self._place(account_id, lines)
        except (QueryFault, DatabaseConnectionFault) as exc:
            logger.error(f"Order placement for {account_id} failed in storage: {exc}")
            raise OrderPersistenceFault(str(exc)) from exc
        except Fault:
            raise
        except Exception as exc:
            logger.error(f"Order placement for {account_id} failed: {exc}", exc_info=True)
            raise OrderPersistenceFault(str(exc)) from exc

        await self.cache.invalidate(CATALOG_CACHE_PREFIX)
        logger.info(
            f"Order {placed.order_id} placed by {account_id}: "
            f"{len(placed.items)} item(s), total {placed.total}"
        )
        return placed

    async def _place(self, account_id: str, lines: List[OrderLine]) -> PlacedOrder:
        total_cents = 0
        priced: List[tuple[OrderLine, str, int]] = []

        for line in lines:
            product = await self.products.get_for_order(line.product_id)
            if product is None:
                raise ProductNotFoundFault(line.product_id)

            if product["stock"] < line.quantity:
                raise InsufficientStockFault(product["id"], product["name"], product["stock"], line.quantity)

            price_cents = product["price_cents"]
            total_cents += price_cents * line.quantity

            if not await self.products.decrement_stock(product["id"], line.quantity):
                available = await self.products.current_stock(product["id"])
                raise InsufficientStockFault(product["id"], product["name"], available or 0, line.quantity)

            priced.append((line, product["name"], price_cents))

        order_id = new_id()
        created_at = utcnow_iso()
        await self.orders.insert_order(
            order_id,
            account_id,
            f"Order with {len(lines)} item(s)",
            total_cents,
            "pending",
            created_at,
        )

        placed_items: List[PlacedOrderItem] = []
        for line, name, price_cents in priced:
            await self.orders.insert_item(new_id(), order_id, line.product_id, line.quantity, price_cents, created_at)
            unit_price = from_cents(price_cents)
            placed_items.append(PlacedOrderItem(
                product_id=line.product_id,
                product_name=name,
                quantity=line.quantity,
                unit_price=unit_price,
                line_total=from_cents(price_cents * line.quantity),
            ))

        return PlacedOrder(
            order_id=order_id,
            user_id=account_id,
            total=from_cents(total_cents),
            status="pending",
            created_at=created_at,
            items=placed_items,
        )
