"""
Controller - class-based request handlers.

Components:
- Controller / RequestCtx: handler base class and per-request context
- GET / POST / PUT / DELETE: route decorators
- ControllerRouter: path template matching
- ControllerEngine: pipeline + handler execution
"""

from .base import Controller, RequestCtx
from .decorators import GET, POST, PUT, DELETE, RouteDecorator
from .engine import ControllerEngine
from .router import CompiledRoute, ControllerRouteMatch, ControllerRouter

__all__ = [
    "Controller",
    "RequestCtx",
    "RouteDecorator",
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "ControllerEngine",
    "ControllerRouter",
    "ControllerRouteMatch",
    "CompiledRoute",
]
