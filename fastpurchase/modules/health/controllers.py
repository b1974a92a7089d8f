"""
Health Module - Controllers
"""

from fastpurchase.controller import Controller, GET, RequestCtx
from fastpurchase.db import Database
from fastpurchase.response import Response
from fastpurchase.utils import utcnow_iso


class HealthController(Controller):
    """Liveness check. Always 200; the database state is reported in the body."""
    prefix = "/health"
    tags = ["Health"]

    @GET("/")
    async def health(self, ctx: RequestCtx) -> Response:
        db = ctx.container.resolve(Database)
        database = "ok" if await db.ping() else "unavailable"
        return Response.ok(
            "Fast Purchase API is running",
            {"status": "ok", "database": database},
            timestamp=utcnow_iso(),
        )
