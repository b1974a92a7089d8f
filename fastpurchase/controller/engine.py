"""
Controller Engine - executes a matched controller route.

Runs the route's pipeline (class-level nodes first, then method-level),
the controller hooks and the handler. Pipeline nodes are async callables
taking ``(request, ctx)``; they either return ``None`` to continue, return
a ``Response`` to short-circuit, or raise a ``Fault``.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from ..request import Request
from ..response import Response
from .base import RequestCtx
from .router import ControllerRouteMatch

logger = logging.getLogger("fastpurchase.controller")


class ControllerEngine:
    """Executes controller routes."""

    async def execute(self, match: ControllerRouteMatch, request: Request, ctx: RequestCtx) -> Response:
        route = match.route
        request.state["path_params"] = match.params

        for node in route.pipeline:
            result = node(request, ctx)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result

        controller = route.controller
        await controller.on_request(ctx)

        result: Any = await route.handler(ctx, **match.params)
        if not isinstance(result, Response):
            result = Response.json(result, status=route.status_code)

        return await controller.on_response(ctx, result)
