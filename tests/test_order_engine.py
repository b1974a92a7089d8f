"""
Tests for OrderEngine: validation, atomicity, stock accounting, totals and
concurrency.
"""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from fastpurchase.cache import CacheService, MemoryBackend
from fastpurchase.db import Database, create_schema
from fastpurchase.faults import QueryFault
from fastpurchase.modules.orders import (
    InsufficientStockFault,
    InvalidOrderItemFault,
    InvalidOrderRequestFault,
    InvalidQuantityFault,
    OrderEngine,
    OrderPersistenceFault,
    OrderRepository,
    validate_order_items,
)
from fastpurchase.modules.products import ProductNotFoundFault, ProductRepository

from tests.conftest import count_rows, create_product, create_user, stock_of


def build_engine(db: Database, cache: CacheService = None) -> OrderEngine:
    return OrderEngine(
        db,
        ProductRepository(db),
        OrderRepository(db),
        cache or CacheService(MemoryBackend(sweep_interval=0)),
    )


@pytest_asyncio.fixture
async def engine(db):
    return build_engine(db)


@pytest_asyncio.fixture
async def buyer(db):
    return await create_user(db)


# ============================================================================
# Validation
# ============================================================================


class TestValidateOrderItems:

    @pytest.mark.parametrize("body", [None, {}, "items", 3, []])
    def test_not_a_non_empty_list(self, body):
        with pytest.raises(InvalidOrderRequestFault) as exc:
            validate_order_items(body)
        assert exc.value.status == 400
        assert exc.value.message == "Invalid request"
        assert exc.value.errors == [
            "Request body must be an array of products with productId and quantity"
        ]

    @pytest.mark.parametrize("entry", [
        "p1",
        {"quantity": 1},
        {"productId": "", "quantity": 1},
        {"productId": "   ", "quantity": 1},
        {"productId": 7, "quantity": 1},
        {"productId": "p1"},
        {"productId": "p1", "quantity": None},
    ])
    def test_bad_entry(self, entry):
        with pytest.raises(InvalidOrderItemFault) as exc:
            validate_order_items([entry])
        assert exc.value.message == "Invalid product data"
        assert exc.value.errors == ["Each product must have productId and quantity"]

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, 2.0, "2", True, False])
    def test_bad_quantity(self, quantity):
        with pytest.raises(InvalidQuantityFault) as exc:
            validate_order_items([{"productId": "p1", "quantity": quantity}])
        assert exc.value.message == "Invalid quantity"
        assert exc.value.errors == ["Quantity must be a positive integer"]

    def test_reports_index_of_first_bad_entry(self):
        with pytest.raises(InvalidQuantityFault) as exc:
            validate_order_items([
                {"productId": "p1", "quantity": 1},
                {"productId": "p2", "quantity": 0},
            ])
        assert exc.value.metadata["index"] == 1

    def test_valid_items_keep_caller_order(self):
        lines = validate_order_items([
            {"productId": "b", "quantity": 2},
            {"productId": "a", "quantity": 1},
            {"productId": "b", "quantity": 3},
        ])
        assert [(l.product_id, l.quantity) for l in lines] == [("b", 2), ("a", 1), ("b", 3)]

    @pytest.mark.asyncio
    async def test_validation_runs_before_store_access(self):
        # No database, repositories or cache: any store access would fail
        engine = OrderEngine(None, None, None, None)
        with pytest.raises(InvalidOrderRequestFault):
            await engine.place_order("acct", [])
        with pytest.raises(InvalidQuantityFault):
            await engine.place_order("acct", [{"productId": "p1", "quantity": 0}])


# ============================================================================
# Placement
# ============================================================================


class TestPlaceOrder:

    @pytest.mark.asyncio
    async def test_single_item(self, db, engine, buyer):
        product = await create_product(db, name="Desk Lamp", price="19.99", stock=5)

        order = await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 2}])

        assert order.user_id == buyer["id"]
        assert order.status == "pending"
        assert order.total == Decimal("39.98")
        assert len(order.items) == 1
        item = order.items[0]
        assert item.product_name == "Desk Lamp"
        assert item.unit_price == Decimal("19.99")
        assert item.line_total == Decimal("39.98")
        assert await stock_of(db, product["id"]) == 3

    @pytest.mark.asyncio
    async def test_total_is_sum_of_line_totals(self, db, engine, buyer):
        a = await create_product(db, name="Pen", price="0.10", stock=100)
        b = await create_product(db, name="Notebook", price="2.35", stock=100)
        c = await create_product(db, name="Stapler", price="7.05", stock=100)

        order = await engine.place_order(buyer["id"], [
            {"productId": a["id"], "quantity": 3},
            {"productId": b["id"], "quantity": 7},
            {"productId": c["id"], "quantity": 1},
        ])

        assert order.total == Decimal("0.30") + Decimal("16.45") + Decimal("7.05")
        assert order.total == sum((i.line_total for i in order.items), Decimal("0"))

    @pytest.mark.asyncio
    async def test_records_order_and_items(self, db, engine, buyer):
        a = await create_product(db, name="Cable", price="5.00", stock=10)
        b = await create_product(db, name="Charger", price="25.00", stock=10)

        order = await engine.place_order(buyer["id"], [
            {"productId": b["id"], "quantity": 1},
            {"productId": a["id"], "quantity": 4},
        ])

        row = await db.fetch_one("SELECT * FROM orders WHERE id = ?", [order.order_id])
        assert row["user_id"] == buyer["id"]
        assert row["description"] == "Order with 2 item(s)"
        assert row["total_cents"] == 4500
        assert row["status"] == "pending"

        items = await db.fetch_all(
            "SELECT product_id, quantity, price_cents FROM order_items WHERE order_id = ? ORDER BY rowid",
            [order.order_id],
        )
        assert [(i["product_id"], i["quantity"], i["price_cents"]) for i in items] == [
            (b["id"], 1, 2500),
            (a["id"], 4, 500),
        ]

    @pytest.mark.asyncio
    async def test_repeated_product_decrements_sequentially(self, db, engine, buyer):
        product = await create_product(db, stock=5)

        order = await engine.place_order(buyer["id"], [
            {"productId": product["id"], "quantity": 2},
            {"productId": product["id"], "quantity": 3},
        ])

        assert len(order.items) == 2
        assert await stock_of(db, product["id"]) == 0

    @pytest.mark.asyncio
    async def test_repeated_product_exceeding_stock_fails_on_second_line(self, db, engine, buyer):
        product = await create_product(db, name="Mug", stock=5)

        with pytest.raises(InsufficientStockFault) as exc:
            await engine.place_order(buyer["id"], [
                {"productId": product["id"], "quantity": 3},
                {"productId": product["id"], "quantity": 3},
            ])

        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert await stock_of(db, product["id"]) == 5
        assert await count_rows(db, "orders") == 0

    @pytest.mark.asyncio
    async def test_to_dict_shape(self, db, engine, buyer):
        product = await create_product(db, name="Desk Lamp", price="19.99", stock=5)
        order = await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 1}])

        body = order.to_dict()
        assert set(body) == {"orderId", "userId", "totalPrice", "status", "createdAt", "items"}
        assert body["items"][0] == {
            "productId": product["id"],
            "productName": "Desk Lamp",
            "quantity": 1,
            "price": Decimal("19.99"),
            "itemTotal": Decimal("19.99"),
        }


# ============================================================================
# Failures and atomicity
# ============================================================================


class TestPlaceOrderFailures:

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, db, engine, buyer):
        product = await create_product(db, name="Widget", stock=5)

        with pytest.raises(InsufficientStockFault) as exc:
            await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 6}])

        assert exc.value.status == 400
        assert exc.value.message == "Insufficient stock"
        assert exc.value.errors == ['Insufficient stock for product "Widget". Available: 5, Requested: 6']
        assert await stock_of(db, product["id"]) == 5

    @pytest.mark.asyncio
    async def test_unknown_product_rolls_back_earlier_lines(self, db, engine, buyer):
        a = await create_product(db, stock=5)
        b = await create_product(db, stock=5)

        with pytest.raises(ProductNotFoundFault) as exc:
            await engine.place_order(buyer["id"], [
                {"productId": a["id"], "quantity": 1},
                {"productId": b["id"], "quantity": 2},
                {"productId": "does-not-exist", "quantity": 1},
            ])

        assert exc.value.status == 404
        assert exc.value.errors == ["Product with ID does-not-exist does not exist"]
        assert await stock_of(db, a["id"]) == 5
        assert await stock_of(db, b["id"]) == 5
        assert await count_rows(db, "orders") == 0
        assert await count_rows(db, "order_items") == 0

    @pytest.mark.asyncio
    async def test_storage_failure_becomes_persistence_fault(self, db, engine, buyer, monkeypatch):
        product = await create_product(db, stock=5)

        async def broken_insert(*args, **kwargs):
            raise QueryFault(model="orders", operation="insert", reason="disk I/O error")

        monkeypatch.setattr(engine.orders, "insert_order", broken_insert)

        with pytest.raises(OrderPersistenceFault) as exc:
            await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 2}])

        assert exc.value.status == 500
        assert exc.value.errors == ["An error occurred while placing the order"]
        assert isinstance(exc.value.__cause__, QueryFault)
        assert await stock_of(db, product["id"]) == 5

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_persistence_fault(self, db, engine, buyer, monkeypatch):
        product = await create_product(db, stock=5)

        async def broken_insert(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine.orders, "insert_item", broken_insert)

        with pytest.raises(OrderPersistenceFault):
            await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 2}])

        assert await stock_of(db, product["id"]) == 5
        assert await count_rows(db, "orders") == 0

    @pytest.mark.asyncio
    async def test_conditional_decrement_catches_stale_read(self, db, engine, buyer, monkeypatch):
        product = await create_product(db, name="Gadget", stock=2)
        real_lookup = engine.products.get_for_order

        async def stale_lookup(product_id):
            row = await real_lookup(product_id)
            return {**row, "stock": 10}

        monkeypatch.setattr(engine.products, "get_for_order", stale_lookup)

        with pytest.raises(InsufficientStockFault) as exc:
            await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 3}])

        assert exc.value.available == 2
        assert await stock_of(db, product["id"]) == 2


# ============================================================================
# Cache invalidation
# ============================================================================


class TestOrderCacheInvalidation:

    @pytest.mark.asyncio
    async def test_success_invalidates_catalog_prefix(self, db, buyer):
        cache = CacheService(MemoryBackend(sweep_interval=0))
        await cache.initialize()
        engine = build_engine(db, cache)
        product = await create_product(db, stock=5)
        await cache.set("/products", {"body": b"stale"})
        await cache.set(f"/products/{product['id']}", {"body": b"stale"})
        await cache.set("/other", "kept")

        await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 1}])

        assert await cache.get("/products") is None
        assert await cache.get(f"/products/{product['id']}") is None
        assert await cache.get("/other") == "kept"
        await cache.shutdown()

    @pytest.mark.asyncio
    async def test_failure_keeps_cache(self, db, buyer):
        cache = CacheService(MemoryBackend(sweep_interval=0))
        await cache.initialize()
        engine = build_engine(db, cache)
        product = await create_product(db, stock=1)
        await cache.set("/products", "cached")

        with pytest.raises(InsufficientStockFault):
            await engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 2}])

        assert await cache.get("/products") == "cached"
        await cache.shutdown()


# ============================================================================
# Concurrency
# ============================================================================


class TestConcurrentOrders:

    @pytest.mark.asyncio
    async def test_three_vs_four_on_stock_five(self, db, engine, buyer):
        product = await create_product(db, stock=5)

        results = await asyncio.gather(
            engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 3}]),
            engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 4}]),
            return_exceptions=True,
        )

        placed = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(placed) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], InsufficientStockFault)
        assert await stock_of(db, product["id"]) == 5 - placed[0].items[0].quantity
        assert await count_rows(db, "orders") == 1

    @pytest.mark.asyncio
    async def test_no_oversell_under_gather(self, db, engine, buyer):
        product = await create_product(db, stock=10)

        results = await asyncio.gather(
            *[
                engine.place_order(buyer["id"], [{"productId": product["id"], "quantity": 1}])
                for _ in range(25)
            ],
            return_exceptions=True,
        )

        placed = [r for r in results if not isinstance(r, Exception)]
        assert len(placed) == 10
        assert all(isinstance(r, InsufficientStockFault) for r in results if isinstance(r, Exception))
        assert await stock_of(db, product["id"]) == 0

    @pytest.mark.asyncio
    async def test_no_oversell_across_connections(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'shop.sqlite3'}"
        first, second = Database(url), Database(url)
        await first.connect()
        await second.connect()
        try:
            await create_schema(first)
            buyer = await create_user(first)
            product = await create_product(first, stock=5)

            results = await asyncio.gather(
                build_engine(first).place_order(buyer["id"], [{"productId": product["id"], "quantity": 3}]),
                build_engine(second).place_order(buyer["id"], [{"productId": product["id"], "quantity": 4}]),
                return_exceptions=True,
            )

            placed = [r for r in results if not isinstance(r, Exception)]
            assert len(placed) == 1
            assert await stock_of(first, product["id"]) == 5 - placed[0].items[0].quantity
        finally:
            await first.disconnect()
            await second.disconnect()
