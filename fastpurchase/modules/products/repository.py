"""
Products Module - Inventory store.

All SQL touching the ``products`` table lives here, including the two
primitives the order engine relies on: the product lookup and the
conditional stock decrement.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from fastpurchase.db import Database, UpdateBuilder
from fastpurchase.utils import from_cents, new_id, to_cents, utcnow_iso

from .validators import CatalogQuery, NewProduct, ProductUpdate

PRODUCT_COLUMNS = (
    "id, name, description, price_cents, stock, category, images, user_id, created_at, updated_at"
)

UPDATABLE_COLUMNS = frozenset({"name", "description", "price_cents", "stock", "category", "images"})


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def product_to_dict(row: Dict[str, Any]) -> Dict[str, Any]:
    """Render a ``products`` row as the public product object."""
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "price": from_cents(row["price_cents"]),
        "stock": row["stock"],
        "category": row["category"],
        "images": json.loads(row["images"] or "[]"),
        "userId": row["user_id"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


class ProductRepository:
    """Data access for the ``products`` table."""

    def __init__(self, db: Database):
        self.db = db

    # ── Reads ────────────────────────────────────────────────────────

    async def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.fetch_one(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = ?",
            [product_id],
        )

    async def get_for_order(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Name, unit price and current stock, read inside the order transaction."""
        return await self.db.fetch_one(
            "SELECT id, name, price_cents, stock FROM products WHERE id = ?",
            [product_id],
        )

    async def current_stock(self, product_id: str) -> Optional[int]:
        return await self.db.fetch_val("SELECT stock FROM products WHERE id = ?", [product_id])

    async def search(self, query: CatalogQuery) -> Tuple[List[Dict[str, Any]], int]:
        """One page of products matching ``query`` and the total match count."""
        clauses: List[str] = []
        params: List[Any] = []

        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            clauses.append("(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')")
            params.extend([pattern, pattern])
        if query.category:
            clauses.append("category = ?")
            params.append(query.category)
        if query.min_price is not None:
            clauses.append("price_cents >= ?")
            params.append(to_cents(query.min_price))
        if query.max_price is not None:
            clauses.append("price_cents <= ?")
            params.append(to_cents(query.max_price))
        if query.in_stock is True:
            clauses.append("stock > 0")
        elif query.in_stock is False:
            clauses.append("stock = 0")

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        total = await self.db.fetch_val(f"SELECT COUNT(*) FROM products{where}", params)

        direction = "ASC" if query.sort_order == "asc" else "DESC"
        rows = await self.db.fetch_all(
            f"SELECT {PRODUCT_COLUMNS} FROM products{where} "
            f"ORDER BY {query.sort_column} {direction}, rowid {direction} "
            f"LIMIT ? OFFSET ?",
            [*params, query.page_size, query.offset],
        )
        return rows, int(total or 0)

    # ── Writes ───────────────────────────────────────────────────────

    async def insert(self, product: NewProduct, owner_id: Optional[str]) -> Dict[str, Any]:
        now = utcnow_iso()
        row = {
            "id": new_id(),
            "name": product.name,
            "description": product.description,
            "price_cents": to_cents(product.price),
            "stock": product.stock,
            "category": product.category,
            "images": json.dumps(product.images),
            "user_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }
        await self.db.execute(
            f"INSERT INTO products ({PRODUCT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            list(row.values()),
        )
        return row

    async def update(self, product_id: str, changes: ProductUpdate) -> bool:
        """Apply the present fields of ``changes``. False when the product does not exist."""
        builder = UpdateBuilder("products", allowed=UPDATABLE_COLUMNS)
        for name, value in changes.present_fields().items():
            if name == "price":
                builder.set("price_cents", to_cents(value))
            elif name == "images":
                builder.set("images", json.dumps(value))
            else:
                builder.set(name, value)
        sql, params = builder.touch("updated_at", utcnow_iso()).where("id = ?", product_id).build()
        cursor = await self.db.execute(sql, params)
        return cursor.rowcount == 1

    async def delete(self, product_id: str) -> bool:
        cursor = await self.db.execute("DELETE FROM products WHERE id = ?", [product_id])
        return cursor.rowcount == 1

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """
        Conditionally take ``quantity`` units.

        Returns False, changing nothing, when the row is gone or holds fewer
        than ``quantity`` units.
        """
        cursor = await self.db.execute(
            "UPDATE products SET stock = stock - ?, updated_at = ? WHERE id = ? AND stock >= ?",
            [quantity, utcnow_iso(), product_id, quantity],
        )
        return cursor.rowcount == 1
