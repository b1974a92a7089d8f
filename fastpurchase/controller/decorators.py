"""
Controller Method Decorators

HTTP method decorators for controller methods.
Attach metadata without import-time side effects.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, List, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class RouteDecorator:
    """
    Base route decorator.

    Attaches metadata to controller methods; ``ControllerRouter`` reads it
    when the controller is registered.
    """

    method: Optional[str] = None

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        pipeline: Optional[List[Any]] = None,
        summary: Optional[str] = None,
        status_code: int = 200,
    ):
        """
        Initialize route decorator.

        Args:
            path: URL path template relative to the controller prefix
                  (e.g., "/", "/«product_id»"). Defaults to "/".
            pipeline: Method-level pipeline nodes, run after the class-level ones
            summary: Human-readable summary for route listings
            status_code: Status code of a successful response
        """
        self.path = path
        self.pipeline = pipeline or []
        self.summary = summary
        self.status_code = status_code

    def __call__(self, func: F) -> F:
        if not hasattr(func, "__route_metadata__"):
            func.__route_metadata__ = []

        func.__route_metadata__.append({
            "http_method": self.method,
            "path": self.path,
            "pipeline": self.pipeline,
            "summary": self.summary or func.__name__.replace("_", " ").title(),
            "description": inspect.getdoc(func) or "",
            "status_code": self.status_code,
            "func_name": func.__name__,
        })
        return func


class GET(RouteDecorator):
    """GET request decorator."""
    method = "GET"


class POST(RouteDecorator):
    """POST request decorator."""
    method = "POST"


class PUT(RouteDecorator):
    """PUT request decorator."""
    method = "PUT"


class DELETE(RouteDecorator):
    """DELETE request decorator."""
    method = "DELETE"
