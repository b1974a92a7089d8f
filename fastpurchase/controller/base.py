"""
Controller Base Class

Provides the base Controller class and RequestCtx abstraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from fastpurchase.auth.guards import Identity
    from fastpurchase.di import Container
    from fastpurchase.request import Request
    from fastpurchase.response import Response


@dataclass
class RequestCtx:
    """
    Request context provided to controller methods.

    Attributes:
        request: The HTTP request
        identity: Authenticated identity, set by ``AuthGuard``
        container: Service container
        state: Additional state dictionary
        request_id: Correlation id assigned by ``RequestIdMiddleware``
    """

    request: "Request"
    identity: Optional["Identity"] = None
    container: Optional["Container"] = None
    state: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def headers(self) -> Dict[str, str]:
        return self.request.headers

    @property
    def query_params(self) -> Dict[str, str]:
        return self.request.query_params

    def query_param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.request.query_param(key, default)

    async def json(self) -> Any:
        """Parse request body as JSON."""
        return await self.request.json()


class Controller:
    """
    Base Controller class.

    Controllers are class-based request handlers with:
    - A URL ``prefix`` shared by every route
    - Method-level route definitions (``@GET``, ``@POST``...)
    - Class-level and method-level pipelines (guards)
    - ``on_request`` / ``on_response`` hooks

    Class Attributes:
        prefix: URL prefix for all routes (e.g., "/products")
        pipeline: Pipeline nodes applied before every method
        tags: Grouping tags, used in route listings

    Example:
        class OrderController(Controller):
            prefix = "/orders"
            pipeline = [AuthGuard()]

            @POST("/")
            async def place(self, ctx):
                engine = ctx.container.resolve(OrderEngine)
                ...
    """

    prefix: str = ""
    pipeline: List[Any] = []
    tags: List[str] = []

    async def on_request(self, ctx: RequestCtx) -> None:
        """Called before each request is processed."""
        pass

    async def on_response(self, ctx: RequestCtx, response: "Response") -> "Response":
        """Called after each request is processed. May replace the response."""
        return response
