"""
Products Module - Services

Catalog reads and admin writes. Every successful write invalidates the
``/products`` response-cache prefix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastpurchase.cache import CacheService

from .faults import ProductNotFoundFault
from .repository import ProductRepository, product_to_dict
from .validators import CatalogQuery, NewProduct, ProductUpdate

logger = logging.getLogger("fastpurchase.products")

CACHE_PREFIX = "/products"


@dataclass
class Page:
    items: List[Dict[str, Any]]
    page_number: int
    page_size: int
    total_size: int


class ProductService:
    """
    Product catalog service.

    Integrates:
    - ProductRepository (inventory store)
    - CacheService (prefix invalidation after writes)
    """

    def __init__(self, repository: ProductRepository, cache: CacheService):
        self.repository = repository
        self.cache = cache

    # ── Queries ──────────────────────────────────────────────

    async def list_products(self, query: CatalogQuery) -> Page:
        rows, total = await self.repository.search(query)
        return Page(
            items=[product_to_dict(r) for r in rows],
            page_number=query.page,
            page_size=query.page_size,
            total_size=total,
        )

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        row = await self.repository.get(product_id)
        if row is None:
            raise ProductNotFoundFault(product_id)
        return product_to_dict(row)

    # ── Admin writes ─────────────────────────────────────────

    async def create_product(self, owner_id: Optional[str], payload: Any) -> Dict[str, Any]:
        product = NewProduct.parse(payload)
        row = await self.repository.insert(product, owner_id)
        await self.cache.invalidate(CACHE_PREFIX)
        logger.info(f"Product {row['id']} created by {owner_id}")
        return product_to_dict(row)

    async def update_product(self, product_id: str, payload: Any) -> Dict[str, Any]:
        changes = ProductUpdate.parse(payload)
        if not await self.repository.update(product_id, changes):
            raise ProductNotFoundFault(product_id)
        await self.cache.invalidate(CACHE_PREFIX)
        logger.info(f"Product {product_id} updated ({', '.join(changes.present_fields())})")
        return await self.get_product(product_id)

    async def delete_product(self, product_id: str) -> None:
        if not await self.repository.delete(product_id):
            raise ProductNotFoundFault(product_id)
        await self.cache.invalidate(CACHE_PREFIX)
        logger.info(f"Product {product_id} deleted")
