"""
HTTP tests for /orders.
"""

import pytest

from tests.conftest import bearer, count_rows, create_product, create_user, stock_of


class TestPlaceOrderEndpoint:

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        resp = await client.post("/orders", json=[{"productId": "x", "quantity": 1}])
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "message": "Authentication required",
            "object": None,
            "errors": ["No token provided"],
        }

    @pytest.mark.asyncio
    async def test_place_order(self, client, server, user, user_headers):
        product = await create_product(server.db, name="Desk Lamp", price="19.99", stock=5)

        resp = await client.post(
            "/orders",
            json=[{"productId": product["id"], "quantity": 2}],
            headers=user_headers,
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Order placed successfully"
        assert body["errors"] is None
        order = body["object"]
        assert order["userId"] == user["id"]
        assert order["totalPrice"] == 39.98
        assert order["status"] == "pending"
        assert order["items"] == [{
            "productId": product["id"],
            "productName": "Desk Lamp",
            "quantity": 2,
            "price": 19.99,
            "itemTotal": 39.98,
        }]
        assert await stock_of(server.db, product["id"]) == 3

    @pytest.mark.asyncio
    async def test_five_then_six(self, client, server, user_headers):
        product = await create_product(server.db, name="Widget", stock=5)

        resp = await client.post(
            "/orders",
            json=[{"productId": product["id"], "quantity": 6}],
            headers=user_headers,
        )

        assert resp.status_code == 400
        assert resp.json()["message"] == "Insufficient stock"
        assert resp.json()["errors"] == ['Insufficient stock for product "Widget". Available: 5, Requested: 6']
        assert await stock_of(server.db, product["id"]) == 5

    @pytest.mark.asyncio
    async def test_unknown_product_leaves_stock_untouched(self, client, server, user_headers):
        product = await create_product(server.db, stock=5)

        resp = await client.post(
            "/orders",
            json=[
                {"productId": product["id"], "quantity": 2},
                {"productId": "missing-id", "quantity": 1},
            ],
            headers=user_headers,
        )

        assert resp.status_code == 404
        assert resp.json()["message"] == "Product not found"
        assert resp.json()["errors"] == ["Product with ID missing-id does not exist"]
        assert await stock_of(server.db, product["id"]) == 5
        assert await count_rows(server.db, "orders") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload,message", [
        ({"productId": "x", "quantity": 1}, "Invalid request"),
        ([], "Invalid request"),
        ([{"productId": "x"}], "Invalid product data"),
        ([{"productId": "x", "quantity": 0}], "Invalid quantity"),
        ([{"productId": "x", "quantity": 1.5}], "Invalid quantity"),
    ])
    async def test_validation(self, client, user_headers, payload, message):
        resp = await client.post("/orders", json=payload, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == message
        assert resp.json()["object"] is None

    @pytest.mark.asyncio
    async def test_malformed_json(self, client, user_headers):
        resp = await client.post(
            "/orders",
            content=b"[{not json",
            headers={**user_headers, "content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid JSON"
        assert resp.json()["errors"] == ["Request body must be valid JSON"]

    @pytest.mark.asyncio
    async def test_deeply_nested_json(self, client, user_headers):
        resp = await client.post(
            "/orders",
            content=b"[" * 100_000 + b"]" * 100_000,
            headers={**user_headers, "content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid JSON"

    @pytest.mark.asyncio
    async def test_order_refreshes_cached_catalog(self, client, server, user_headers):
        product = await create_product(server.db, stock=5)

        first = await client.get(f"/products/{product['id']}")
        assert first.headers["x-cache"] == "MISS"
        assert first.json()["object"]["stock"] == 5

        await client.post(
            "/orders",
            json=[{"productId": product["id"], "quantity": 2}],
            headers=user_headers,
        )

        after = await client.get(f"/products/{product['id']}")
        assert after.headers["x-cache"] == "MISS"
        assert after.json()["object"]["stock"] == 3


class TestOrderHistoryEndpoint:

    @pytest.mark.asyncio
    async def test_empty_history(self, client, user_headers):
        resp = await client.get("/orders", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "No orders found",
            "object": {"orders": []},
            "errors": None,
        }

    @pytest.mark.asyncio
    async def test_history(self, client, server, user_headers):
        product = await create_product(server.db, name="Pen", price="1.50", stock=10)
        for qty in (1, 2):
            resp = await client.post(
                "/orders",
                json=[{"productId": product["id"], "quantity": qty}],
                headers=user_headers,
            )
            assert resp.status_code == 201

        resp = await client.get("/orders", headers=user_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Order history retrieved successfully"
        assert body["object"]["totalOrders"] == 2
        orders = body["object"]["orders"]
        assert [o["totalPrice"] for o in orders] == [3.0, 1.5]
        assert set(orders[0]) == {
            "orderId", "description", "totalPrice", "status", "createdAt", "updatedAt", "items",
        }
        assert orders[0]["items"][0]["itemTotal"] == 3.0

    @pytest.mark.asyncio
    async def test_history_is_per_account(self, client, server, user_headers):
        product = await create_product(server.db, stock=10)
        await client.post("/orders", json=[{"productId": product["id"], "quantity": 1}], headers=user_headers)

        other = await create_user(server.db)
        resp = await client.get("/orders", headers=await bearer(server, other))
        assert resp.json()["message"] == "No orders found"
