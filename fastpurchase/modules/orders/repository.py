"""
Orders Module - Order ledger.

SQL for the ``orders`` and ``order_items`` tables. Line items carry their
own price snapshot; the product name is joined in at read time and is
``None`` once the product is deleted.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from fastpurchase.db import Database


class OrderRepository:
    """Data access for ``orders`` and ``order_items``."""

    def __init__(self, db: Database):
        self.db = db

    async def insert_order(
        self,
        order_id: str,
        user_id: str,
        description: str,
        total_cents: int,
        status: str,
        created_at: str,
    ) -> None:
        await self.db.execute(
            "INSERT INTO orders (id, user_id, description, total_cents, status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [order_id, user_id, description, total_cents, status, created_at, created_at],
        )

    async def insert_item(
        self,
        item_id: str,
        order_id: str,
        product_id: str,
        quantity: int,
        price_cents: int,
        created_at: str,
    ) -> None:
        await self.db.execute(
            "INSERT INTO order_items (id, order_id, product_id, quantity, price_cents, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [item_id, order_id, product_id, quantity, price_cents, created_at],
        )

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Orders of one account, newest first."""
        return await self.db.fetch_all(
            "SELECT id, user_id, description, total_cents, status, created_at, updated_at "
            "FROM orders WHERE user_id = ? "
            "ORDER BY created_at DESC, rowid DESC",
            [user_id],
        )

    async def items_for_orders(self, order_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Line items grouped by order id, each group in insertion order."""
        grouped: Dict[str, List[Dict[str, Any]]] = {order_id: [] for order_id in order_ids}
        if not order_ids:
            return grouped
        placeholders = ", ".join("?" for _ in order_ids)
        rows = await self.db.fetch_all(
            "SELECT oi.order_id, oi.product_id, oi.quantity, oi.price_cents, p.name AS product_name "
            "FROM order_items oi LEFT JOIN products p ON p.id = oi.product_id "
            f"WHERE oi.order_id IN ({placeholders}) "
            "ORDER BY oi.rowid",
            list(order_ids),
        )
        for row in rows:
            grouped[row["order_id"]].append(row)
        return grouped
