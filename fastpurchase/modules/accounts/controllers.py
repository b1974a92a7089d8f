"""
Accounts Module - Controllers
"""

from fastpurchase.controller import Controller, POST, RequestCtx
from fastpurchase.response import Response

from .services import AccountService


class AccountController(Controller):
    """Registration and login. Neither route requires a token."""
    prefix = "/auth"
    tags = ["Authentication"]

    @POST("/register", status_code=201)
    async def register(self, ctx: RequestCtx) -> Response:
        service = ctx.container.resolve(AccountService)
        account = await service.register(await ctx.json())
        return Response.created("User registered successfully", account)

    @POST("/login")
    async def login(self, ctx: RequestCtx) -> Response:
        service = ctx.container.resolve(AccountService)
        session = await service.login(await ctx.json())
        return Response.ok("Login successful", session)
