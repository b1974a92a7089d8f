"""
ASGI adapter - bridges the ASGI protocol to the request/response system.

- Middleware chain is built once and cached.
- Route matching runs before the chain; the final handler dispatches to
  the matched controller or raises ``RouteNotFoundFault`` so the
  exception middleware renders the 404 envelope.
- Lifespan events drive ``server.startup()`` / ``server.shutdown()``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .controller.base import RequestCtx
from .controller.engine import ControllerEngine
from .controller.router import ControllerRouter
from .faults import RouteNotFoundFault
from .middleware import Handler, MiddlewareStack
from .request import Request
from .response import Response


class ASGIAdapter:
    """
    ASGI application adapter.

    Converts ASGI events to ``Request``/``Response`` and runs them through
    the middleware stack and controller routes.
    """

    __slots__ = (
        "controller_router",
        "controller_engine",
        "middleware_stack",
        "server",
        "logger",
        "_cached_middleware_chain",
    )

    def __init__(
        self,
        controller_router: ControllerRouter,
        controller_engine: ControllerEngine,
        middleware_stack: MiddlewareStack,
        server: Optional[Any] = None,
    ):
        self.controller_router = controller_router
        self.controller_engine = controller_engine
        self.middleware_stack = middleware_stack
        self.server = server
        self.logger = logging.getLogger("fastpurchase.asgi")
        self._cached_middleware_chain: Optional[Handler] = None

    # ------------------------------------------------------------------
    # Middleware chain building (cached)
    # ------------------------------------------------------------------

    def _build_cached_chain(self) -> Handler:
        if self._cached_middleware_chain is not None:
            return self._cached_middleware_chain

        async def _final_handler(request: Request, ctx: RequestCtx) -> Response:
            controller_match = request.state.get("_controller_match")
            if controller_match is None:
                raise RouteNotFoundFault(request.method, request.path)
            return await self.controller_engine.execute(controller_match, request, ctx)

        self._cached_middleware_chain = self.middleware_stack.build_handler(_final_handler)
        return self._cached_middleware_chain

    async def startup(self) -> None:
        """Run server startup outside an ASGI lifespan (tests, CLI)."""
        if self.server is not None:
            await self.server.startup()

    async def shutdown(self) -> None:
        if self.server is not None:
            await self.server.shutdown()

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            self.logger.warning(f"Unsupported ASGI scope type: {scope_type}")

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        chain = self._build_cached_chain()

        request = Request(scope, receive)
        container = self.server.container if self.server is not None else None
        ctx = RequestCtx(request=request, container=container)

        controller_match = self.controller_router.match(request.path, request.method)
        if controller_match is not None:
            request.state["_controller_match"] = controller_match
            request.state["route_pattern"] = controller_match.route.template
        else:
            request.state["route_pattern"] = None

        try:
            response = await chain(request, ctx)
        except Exception as e:
            # Only reachable when the exception middleware is not installed
            self.logger.error(f"Critical error in request pipeline: {e}", exc_info=True)
            response = Response.error("Internal server error", ["An unexpected error occurred"], status=500)

        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    if self.server is not None:
                        await self.server.startup()
                        self.logger.debug("Server startup complete")
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    if self.server is not None:
                        await self.server.shutdown()
                        self.logger.debug("Server shutdown complete")
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error(f"Shutdown error: {e}", exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break
