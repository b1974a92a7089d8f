"""
Tests for the catalog: input validation, listing queries, admin writes and
the response cache around /products.
"""

from decimal import Decimal

import pytest

from fastpurchase.db import UpdateBuilder
from fastpurchase.modules.products import (
    CatalogQuery,
    InvalidCatalogQueryFault,
    MissingProductFieldsFault,
    NewProduct,
    ProductUpdate,
    ProductValidationFault,
)
from fastpurchase.modules.products.validators import MAX_PAGE

from tests.conftest import create_product


VALID_PRODUCT = {
    "name": "Standing Desk",
    "description": "Electric sit-stand desk with memory presets",
    "price": 349.99,
    "stock": 7,
    "category": "Furniture",
}


# ============================================================================
# UpdateBuilder
# ============================================================================


class TestUpdateBuilder:

    def test_build(self):
        sql, params = (
            UpdateBuilder("products", allowed={"name", "stock"})
            .set("name", "Desk")
            .set("stock", 3)
            .touch("updated_at", "now")
            .where("id = ?", "p1")
            .build()
        )
        assert sql == "UPDATE products SET name = ?, stock = ?, updated_at = ? WHERE (id = ?)"
        assert params == ["Desk", 3, "now", "p1"]

    def test_rejects_unknown_column(self):
        with pytest.raises(ValueError):
            UpdateBuilder("products", allowed={"name"}).set("user_id", "x")

    def test_requires_changes_and_where(self):
        with pytest.raises(ValueError):
            UpdateBuilder("products").where("id = ?", 1).build()
        with pytest.raises(ValueError):
            UpdateBuilder("products").set("name", "x").build()

    def test_has_changes(self):
        builder = UpdateBuilder("products")
        assert not builder.has_changes
        builder.set_many({"name": "x"})
        assert builder.has_changes


# ============================================================================
# Validators
# ============================================================================


class TestNewProduct:

    def test_parse(self):
        product = NewProduct.parse({**VALID_PRODUCT, "images": ["https://cdn.example.com/a.png"]})
        assert product.name == "Standing Desk"
        assert product.price == Decimal("349.99")
        assert product.images == ["https://cdn.example.com/a.png"]

    def test_price_rounds_half_up(self):
        assert NewProduct.parse({**VALID_PRODUCT, "price": 10.005}).price == Decimal("10.01")

    @pytest.mark.parametrize("missing", ["name", "description", "price", "stock", "category"])
    def test_missing_field(self, missing):
        payload = {k: v for k, v in VALID_PRODUCT.items() if k != missing}
        with pytest.raises(MissingProductFieldsFault) as exc:
            NewProduct.parse(payload)
        assert exc.value.message == "All fields are required"

    def test_collects_every_rule_failure(self):
        with pytest.raises(ProductValidationFault) as exc:
            NewProduct.parse({
                "name": "ab",
                "description": "short",
                "price": -1,
                "stock": -2,
                "category": "Tools",
                "images": ["ftp://nope"],
            })
        assert exc.value.errors == [
            "Product name must be between 3 and 100 characters",
            "Product description must be at least 10 characters long",
            "Price must be a positive number greater than 0",
            "Stock must be a non-negative integer (0 or more)",
            "Images must be an array of URL strings",
        ]

    def test_zero_stock_allowed(self):
        assert NewProduct.parse({**VALID_PRODUCT, "stock": 0}).stock == 0

    @pytest.mark.parametrize("price, rule", [
        (1e20, "Price cannot exceed 99999999.99"),
        (1e30, "Price must be a positive number greater than 0"),
        (100000000, "Price cannot exceed 99999999.99"),
    ])
    def test_price_out_of_range(self, price, rule):
        with pytest.raises(ProductValidationFault) as exc:
            NewProduct.parse({**VALID_PRODUCT, "price": price})
        assert exc.value.errors == [rule]

    def test_largest_price_allowed(self):
        assert NewProduct.parse({**VALID_PRODUCT, "price": 99999999.99}).price == Decimal("99999999.99")

    def test_stock_out_of_range(self):
        with pytest.raises(ProductValidationFault) as exc:
            NewProduct.parse({**VALID_PRODUCT, "stock": 10**20})
        assert exc.value.errors == ["Stock cannot exceed 9223372036854775807"]


class TestProductUpdate:

    def test_partial(self):
        update = ProductUpdate.parse({"stock": 3, "name": None, "unknown": 1})
        assert update.present_fields() == {"stock": 3}

    def test_empty(self):
        with pytest.raises(ProductValidationFault) as exc:
            ProductUpdate.parse({"unknown": 1})
        assert exc.value.errors == ["At least one field must be provided for update"]


class TestCatalogQuery:

    def test_defaults(self):
        query = CatalogQuery.parse({})
        assert (query.page, query.page_size, query.sort_by, query.sort_order) == (1, 10, "createdAt", "desc")
        assert query.offset == 0
        assert query.sort_column == "created_at"

    def test_parse(self):
        query = CatalogQuery.parse({
            "page": "3",
            "pageSize": "20",
            "search": " desk ",
            "minPrice": "10",
            "maxPrice": "99.5",
            "inStock": "true",
            "sortBy": "price",
            "sortOrder": "ASC",
        })
        assert query.offset == 40
        assert query.search == "desk"
        assert query.min_price == Decimal("10.00")
        assert query.in_stock is True
        assert query.sort_column == "price_cents"
        assert query.sort_order == "asc"

    def test_collects_errors(self):
        with pytest.raises(InvalidCatalogQueryFault) as exc:
            CatalogQuery.parse({"page": "0", "pageSize": "500", "sortBy": "id", "minPrice": "5", "maxPrice": "1"})
        assert exc.value.message == "Invalid query parameters"
        assert len(exc.value.errors) == 4

    @pytest.mark.parametrize("params", [
        {"page": "\u00b2"},
        {"page": "99999999999999999999"},
        {"page": "9" * 5000},
        {"pageSize": "\u0661"},
        {"minPrice": "1e30"},
        {"maxPrice": "1e30"},
        {"maxPrice": "100000000"},
    ])
    def test_rejects_out_of_range_numbers(self, params):
        with pytest.raises(InvalidCatalogQueryFault):
            CatalogQuery.parse(params)

    def test_largest_page_keeps_offset_in_range(self):
        query = CatalogQuery.parse({"page": str(MAX_PAGE), "pageSize": "100"})
        assert query.offset <= 2**63 - 1


# ============================================================================
# Catalog endpoints
# ============================================================================


class TestCatalogEndpoints:

    @pytest.mark.asyncio
    async def test_list_paginated(self, client, server):
        for i in range(3):
            await create_product(server.db, name=f"Item {i}", price=f"{i + 1}.00")

        resp = await client.get("/products", params={"pageSize": "2", "sortBy": "price", "sortOrder": "asc"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Products retrieved successfully"
        assert body["pageNumber"] == 1
        assert body["pageSize"] == 2
        assert body["totalSize"] == 3
        assert [p["price"] for p in body["object"]] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_filters(self, client, server):
        await create_product(server.db, name="Oak Desk", category="Furniture", stock=0)
        await create_product(server.db, name="Pine Desk", category="Furniture", stock=2)
        await create_product(server.db, name="Lamp", category="Lighting", stock=2)

        resp = await client.get("/products", params={"category": "Furniture", "inStock": "true"})
        assert [p["name"] for p in resp.json()["object"]] == ["Pine Desk"]

        resp = await client.get("/products", params={"search": "desk"})
        assert resp.json()["totalSize"] == 2

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, client, server):
        await create_product(server.db, name="100% Cotton Shirt")
        await create_product(server.db, name="Cotton Socks")

        resp = await client.get("/products", params={"search": "100%"})
        assert [p["name"] for p in resp.json()["object"]] == ["100% Cotton Shirt"]

    @pytest.mark.asyncio
    async def test_invalid_query(self, client):
        resp = await client.get("/products", params={"sortOrder": "sideways"})
        assert resp.status_code == 400
        assert resp.json()["errors"] == ["sortOrder must be asc or desc"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [
        {"minPrice": "1e30"},
        {"maxPrice": "1e30"},
        {"page": "\u00b2"},
        {"page": "99999999999999999999"},
    ])
    async def test_out_of_range_query_is_400(self, client, params):
        resp = await client.get("/products", params=params)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid query parameters"

    @pytest.mark.asyncio
    async def test_get_product(self, client, server):
        product = await create_product(server.db, name="Desk Lamp", price="19.99")
        resp = await client.get(f"/products/{product['id']}")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Product retrieved successfully"
        assert resp.json()["object"]["price"] == 19.99

    @pytest.mark.asyncio
    async def test_get_missing_product(self, client):
        resp = await client.get("/products/nope")
        assert resp.status_code == 404
        assert resp.json()["errors"] == ["Product with ID nope does not exist"]


class TestAdminWrites:

    @pytest.mark.asyncio
    async def test_create_requires_token(self, client):
        resp = await client.post("/products", json=VALID_PRODUCT)
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client, user_headers):
        resp = await client.post("/products", json=VALID_PRODUCT, headers=user_headers)
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied"
        assert resp.json()["errors"] == ["You do not have permission to access this resource"]

    @pytest.mark.asyncio
    async def test_create(self, client, admin, admin_headers):
        resp = await client.post("/products", json=VALID_PRODUCT, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Product created successfully"
        assert body["object"]["price"] == 349.99
        assert body["object"]["userId"] == admin["id"]

    @pytest.mark.asyncio
    async def test_create_validation(self, client, admin_headers):
        resp = await client.post("/products", json={**VALID_PRODUCT, "price": 0}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field, value", [("price", 1e20), ("price", 1e30), ("stock", 10**20)])
    async def test_create_out_of_range_is_400(self, client, admin_headers, field, value):
        resp = await client.post("/products", json={**VALID_PRODUCT, field: value}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_update(self, client, server, admin_headers):
        product = await create_product(server.db, stock=5)
        resp = await client.put(
            f"/products/{product['id']}",
            json={"stock": 12, "price": 4.5},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Product updated successfully"
        assert resp.json()["object"]["stock"] == 12
        assert resp.json()["object"]["price"] == 4.5

    @pytest.mark.asyncio
    async def test_fetched_product_can_be_sent_back(self, client, server, admin_headers):
        product = await create_product(server.db, price="19.99")
        fetched = (await client.get(f"/products/{product['id']}")).json()["object"]
        payload = {k: fetched[k] for k in ("name", "description", "price", "stock", "category")}
        resp = await client.put(f"/products/{product['id']}", json=payload, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["object"]["price"] == 19.99

    @pytest.mark.asyncio
    async def test_update_missing(self, client, admin_headers):
        resp = await client.put("/products/nope", json={"stock": 1}, headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client, server, admin_headers):
        product = await create_product(server.db)
        resp = await client.delete(f"/products/{product['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Product deleted successfully"
        assert (await client.get(f"/products/{product['id']}")).status_code == 404


class TestCatalogCache:

    @pytest.mark.asyncio
    async def test_hit_then_miss_after_write(self, client, server, admin_headers):
        await create_product(server.db, name="Cached Item")

        first = await client.get("/products")
        second = await client.get("/products")
        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert second.json() == first.json()

        await client.post("/products", json=VALID_PRODUCT, headers=admin_headers)

        third = await client.get("/products")
        assert third.headers["x-cache"] == "MISS"
        assert third.json()["totalSize"] == 2

    @pytest.mark.asyncio
    async def test_query_string_is_part_of_key(self, client):
        await client.get("/products", params={"page": "1"})
        resp = await client.get("/products", params={"page": "2"})
        assert resp.headers["x-cache"] == "MISS"

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, client):
        await client.get("/products/nope")
        resp = await client.get("/products/nope")
        assert "x-cache" not in resp.headers
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_etag_revalidation(self, client):
        first = await client.get("/products")
        resp = await client.get("/products", headers={"if-none-match": first.headers["etag"]})
        assert resp.status_code == 304
