"""
Products Module - Controllers

Public catalog reads and admin-only writes.
"""

from fastpurchase.auth import AuthGuard, RoleGuard
from fastpurchase.controller import Controller, DELETE, GET, POST, PUT, RequestCtx
from fastpurchase.response import Response, paginated_envelope

from .services import ProductService
from .validators import CatalogQuery

ADMIN_ONLY = [AuthGuard(), RoleGuard(["admin"])]


class ProductController(Controller):
    """Catalog listing, lookup and administration."""
    prefix = "/products"
    tags = ["Products"]

    @GET("/")
    async def list_products(self, ctx: RequestCtx) -> Response:
        """Paginated, filterable and sortable listing."""
        query = CatalogQuery.parse(ctx.query_params)
        service = ctx.container.resolve(ProductService)
        page = await service.list_products(query)
        return Response.json(paginated_envelope(
            "Products retrieved successfully",
            page.items,
            page_number=page.page_number,
            page_size=page.page_size,
            total_size=page.total_size,
        ))

    @GET("/«product_id»")
    async def get_product(self, ctx: RequestCtx, product_id: str) -> Response:
        service = ctx.container.resolve(ProductService)
        product = await service.get_product(product_id)
        return Response.ok("Product retrieved successfully", product)

    @POST("/", pipeline=ADMIN_ONLY, status_code=201)
    async def create_product(self, ctx: RequestCtx) -> Response:
        payload = await ctx.json()
        service = ctx.container.resolve(ProductService)
        product = await service.create_product(ctx.identity.id, payload)
        return Response.created("Product created successfully", product)

    @PUT("/«product_id»", pipeline=ADMIN_ONLY)
    async def update_product(self, ctx: RequestCtx, product_id: str) -> Response:
        payload = await ctx.json()
        service = ctx.container.resolve(ProductService)
        product = await service.update_product(product_id, payload)
        return Response.ok("Product updated successfully", product)

    @DELETE("/«product_id»", pipeline=ADMIN_ONLY)
    async def delete_product(self, ctx: RequestCtx, product_id: str) -> Response:
        service = ctx.container.resolve(ProductService)
        await service.delete_product(product_id)
        return Response.ok("Product deleted successfully")
