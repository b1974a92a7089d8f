"""
Controller Router - Pattern-based router for controllers.

Two-tier matching:
1. Static route hash map: O(1) lookup for routes with no parameters
2. Compiled regex list for parameterized routes (``/products/«product_id»``)

Path parameters are written in guillemets with an optional type::

    «product_id»        any single path segment
    «page:int»          digits only, converted to int
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Type

from .base import Controller

logger = logging.getLogger("fastpurchase.routing")

_PARAM_RE = re.compile(r"«(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<type>int|str))?»")

_TYPE_PATTERNS = {
    "str": r"[^/]+",
    "int": r"\d+",
}

_CASTS: Dict[str, Callable[[str], Any]] = {
    "str": str,
    "int": int,
}

_EMPTY_PARAMS: Dict[str, Any] = {}


def _join(prefix: str, path: Optional[str]) -> str:
    full = "/" + "/".join(p for p in (prefix.strip("/"), (path or "").strip("/")) if p)
    return full


def normalize_path(path: str) -> str:
    """Strip a trailing slash (except for the root)."""
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


@dataclass
class CompiledRoute:
    """A controller method bound to a concrete method + path template."""

    controller: Controller
    handler: Callable[..., Any]
    http_method: str
    template: str
    pipeline: List[Any] = field(default_factory=list)
    status_code: int = 200
    summary: str = ""
    pattern: Optional[Pattern[str]] = None
    param_types: Dict[str, str] = field(default_factory=dict)

    @property
    def is_static(self) -> bool:
        return self.pattern is None

    def __repr__(self) -> str:
        return f"<Route {self.http_method} {self.template} -> {type(self.controller).__name__}.{self.handler.__name__}>"


@dataclass
class ControllerRouteMatch:
    """Result of a successful controller route match."""

    route: CompiledRoute
    params: Dict[str, Any]


def compile_template(template: str) -> Tuple[Optional[Pattern[str]], Dict[str, str]]:
    """
    Compile a path template.

    Returns ``(None, {})`` for static templates, otherwise the anchored
    regex and the declared type of each parameter.
    """
    if "«" not in template:
        return None, {}

    param_types: Dict[str, str] = {}
    parts: List[str] = []
    pos = 0
    for m in _PARAM_RE.finditer(template):
        parts.append(re.escape(template[pos:m.start()]))
        name = m.group("name")
        kind = m.group("type") or "str"
        if name in param_types:
            raise ValueError(f"Duplicate path parameter '{name}' in {template!r}")
        param_types[name] = kind
        parts.append(f"(?P<{name}>{_TYPE_PATTERNS[kind]})")
        pos = m.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("^" + "".join(parts) + "$"), param_types


class ControllerRouter:
    """
    Router for controller-based routes.

    Usage:
        router = ControllerRouter()
        router.add_controller(ProductController)
        match = router.match("/products/abc", "GET")
    """

    def __init__(self):
        self.routes: List[CompiledRoute] = []
        self._static: Dict[str, Dict[str, CompiledRoute]] = {}
        self._dynamic: Dict[str, List[CompiledRoute]] = {}

    def add_controller(self, controller_cls: Type[Controller]) -> List[CompiledRoute]:
        """Instantiate a controller and register every decorated method."""
        controller = controller_cls()
        compiled: List[CompiledRoute] = []

        for attr_name in dir(controller_cls):
            func = getattr(controller_cls, attr_name, None)
            metadata_list = getattr(func, "__route_metadata__", None)
            if not metadata_list:
                continue
            for metadata in metadata_list:
                template = _join(controller_cls.prefix, metadata["path"])
                pattern, param_types = compile_template(template)
                route = CompiledRoute(
                    controller=controller,
                    handler=getattr(controller, metadata["func_name"]),
                    http_method=metadata["http_method"],
                    template=template,
                    pipeline=list(controller_cls.pipeline) + list(metadata["pipeline"]),
                    status_code=metadata["status_code"],
                    summary=metadata["summary"],
                    pattern=pattern,
                    param_types=param_types,
                )
                self._register(route)
                compiled.append(route)

        logger.debug(f"Registered {len(compiled)} routes from {controller_cls.__name__}")
        return compiled

    def _register(self, route: CompiledRoute) -> None:
        if route.is_static:
            by_method = self._static.setdefault(route.template, {})
            if route.http_method in by_method:
                raise ValueError(f"Route conflict: {route.http_method} {route.template} is already registered")
            by_method[route.http_method] = route
        else:
            self._dynamic.setdefault(route.http_method, []).append(route)
        self.routes.append(route)

    def match(self, path: str, method: str) -> Optional[ControllerRouteMatch]:
        """Match a request path + method. Static routes win over dynamic ones."""
        path = normalize_path(path)

        by_method = self._static.get(path)
        if by_method is not None:
            route = by_method.get(method)
            if route is not None:
                return ControllerRouteMatch(route=route, params=_EMPTY_PARAMS)

        for route in self._dynamic.get(method, ()):
            m = route.pattern.match(path)
            if m is None:
                continue
            params = {
                name: _CASTS[route.param_types[name]](value)
                for name, value in m.groupdict().items()
            }
            return ControllerRouteMatch(route=route, params=params)

        return None

    def get_routes(self) -> List[Dict[str, Any]]:
        return [
            {
                "method": r.http_method,
                "path": r.template,
                "handler": f"{type(r.controller).__name__}.{r.handler.__name__}",
                "summary": r.summary,
            }
            for r in self.routes
        ]
