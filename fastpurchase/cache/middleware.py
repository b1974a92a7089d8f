"""
Cache - HTTP response caching middleware.

Serves repeated catalog reads from ``CacheService``:
- Only GET requests under the configured prefixes are considered
- Only 200 responses are stored
- The key is the path plus the raw query string
- ``x-cache: HIT|MISS`` on every considered response
- ETag generation and ``If-None-Match`` validation
- ``Cache-Control: no-store`` on the request bypasses the cache

Writers invalidate by prefix (``CacheService.invalidate("/products")``);
the middleware never tracks dependencies itself.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Optional, Sequence, TYPE_CHECKING

from ..response import Response

if TYPE_CHECKING:
    from ..controller.base import RequestCtx
    from ..request import Request
    from .service import CacheService

logger = logging.getLogger("fastpurchase.cache.middleware")

# Per-request headers that must not be replayed from the cache
_VOLATILE_HEADERS = frozenset({
    "content-length",
    "x-request-id",
    "x-ratelimit-limit",
    "x-ratelimit-remaining",
    "x-ratelimit-reset",
})


class ResponseCacheMiddleware:
    """
    HTTP response caching middleware.

    Usage::

        server.middleware_stack.add(
            ResponseCacheMiddleware(cache_service, prefixes=("/products",)),
            priority=50,
            name="response_cache",
        )
    """

    def __init__(
        self,
        cache_service: "CacheService",
        prefixes: Sequence[str] = ("/products",),
        ttl: Optional[float] = None,
    ):
        self._cache = cache_service
        self._prefixes = tuple(prefixes)
        self._ttl = ttl

    @staticmethod
    def build_key(request: "Request") -> str:
        query = request.query_string
        return f"{request.path}?{query}" if query else request.path

    def _is_cacheable(self, request: "Request") -> bool:
        if request.method != "GET":
            return False
        return request.path.startswith(self._prefixes)

    @staticmethod
    def _generate_etag(body: bytes) -> str:
        return f'W/"{hashlib.sha1(body).hexdigest()}"'

    async def __call__(self, request: "Request", ctx: "RequestCtx", next_handler: Any) -> Response:
        if not self._is_cacheable(request):
            return await next_handler(request, ctx)

        if "no-store" in (request.header("cache-control") or ""):
            return await next_handler(request, ctx)

        cache_key = self.build_key(request)
        cached = await self._cache.get(cache_key)

        if isinstance(cached, dict):
            etag = cached["etag"]
            if request.header("if-none-match") == etag:
                return Response(b"", status=304, headers={"etag": etag, "x-cache": "HIT"})
            headers = dict(cached["headers"])
            headers["x-cache"] = "HIT"
            return Response(cached["body"], status=cached["status"], headers=headers)

        response = await next_handler(request, ctx)
        if response.status != 200:
            return response

        body = response.body
        etag = self._generate_etag(body)
        response.headers["etag"] = etag
        await self._cache.set(
            cache_key,
            {
                "body": body,
                "status": response.status,
                "etag": etag,
                "headers": {k: v for k, v in response.headers.items() if k not in _VOLATILE_HEADERS},
            },
            ttl=self._ttl,
        )
        response.headers["x-cache"] = "MISS"
        return response
