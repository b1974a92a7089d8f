"""
Orders Module - Controllers
"""

from fastpurchase.auth import AuthGuard
from fastpurchase.controller import Controller, GET, POST, RequestCtx
from fastpurchase.response import Response

from .engine import OrderEngine
from .services import OrderService


class OrderController(Controller):
    """Order placement and history for the authenticated account."""
    prefix = "/orders"
    pipeline = [AuthGuard()]
    tags = ["Orders"]

    @POST("/", status_code=201)
    async def place_order(self, ctx: RequestCtx) -> Response:
        items = await ctx.json()
        engine = ctx.container.resolve(OrderEngine)
        order = await engine.place_order(ctx.identity.id, items)
        return Response.created("Order placed successfully", order.to_dict())

    @GET("/")
    async def order_history(self, ctx: RequestCtx) -> Response:
        service = ctx.container.resolve(OrderService)
        orders = await service.get_order_history(ctx.identity.id)
        if not orders:
            return Response.ok("No orders found", {"orders": []})
        return Response.ok(
            "Order history retrieved successfully",
            {"orders": [o.to_dict() for o in orders], "totalOrders": len(orders)},
        )
