"""
Middleware system - composable, async-first middleware.

A middleware is any async callable ``(request, ctx, next_handler) -> Response``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TYPE_CHECKING

from .faults import Fault
from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .controller.base import RequestCtx

Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]
Middleware = Callable[[Request, "RequestCtx", Handler], Awaitable[Response]]


@dataclass
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Ordered middleware stack.

    Lower priority runs first (outermost). Ties keep registration order.
    """

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []

    def add(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None) -> None:
        if name is None:
            name = getattr(middleware, "__name__", None) or type(middleware).__name__
        self.middlewares.append(MiddlewareDescriptor(middleware=middleware, priority=priority, name=name))
        self.middlewares.sort(key=lambda d: d.priority)

    def build_handler(self, final_handler: Handler) -> Handler:
        """Build middleware chain wrapping the final handler."""
        handler = final_handler
        # Wrap in reverse order so first middleware is outermost
        for desc in reversed(self.middlewares):
            handler = self._wrap_middleware(desc.middleware, handler)
        return handler

    def _wrap_middleware(self, middleware: Middleware, next_handler: Handler) -> Handler:
        async def wrapped(request: Request, ctx: "RequestCtx") -> Response:
            return await middleware(request, ctx, next_handler)
        return wrapped

    def names(self) -> List[str]:
        return [d.name for d in self.middlewares]


class RequestIdMiddleware:
    """Adds a request id to each request and echoes it in the response."""

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name.lower()

    async def __call__(self, request: Request, ctx: "RequestCtx", next: Handler) -> Response:
        request_id = request.header(self.header_name) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        ctx.request_id = request_id

        response = await next(request, ctx)
        response.headers[self.header_name] = request_id
        return response


class ExceptionMiddleware:
    """
    Converts exceptions into failure envelopes.

    - ``Fault``: rendered with its own status, message and errors. Non-public
      faults are rendered with a generic 500 body.
    - Anything else: 500 ``Internal server error`` / ``An unexpected error
      occurred``, logged with traceback.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.logger = logging.getLogger("fastpurchase.exceptions")

    async def __call__(self, request: Request, ctx: "RequestCtx", next: Handler) -> Response:
        try:
            return await next(request, ctx)

        except Fault as e:
            if e.status >= 500:
                self.logger.error(
                    f"Fault {e.code} on {request.method} {request.path}: {e} {e.metadata}",
                    exc_info=e.__cause__ is not None,
                )
            else:
                self.logger.warning(f"Fault {e.code}: {e.message}")

            if e.public or e.status < 500:
                message, errors = e.message, e.errors
            else:
                message, errors = "Internal server error", e.errors or ["An unexpected error occurred"]

            return Response.error(message, errors, status=e.status)

        except Exception as e:
            self.logger.error(f"Unhandled exception on {request.method} {request.path}: {e}", exc_info=True)
            errors = [str(e)] if self.debug else ["An unexpected error occurred"]
            return Response.error("Internal server error", errors, status=500)
