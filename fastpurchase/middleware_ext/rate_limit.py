"""
Rate Limiting Middleware - per-client request rate limiting.

Counts requests with a sliding window (two adjacent fixed windows, so
there are no boundary spikes).

Features:
- Per-client keying (socket peer IP by default, or a custom extractor)
- Multiple limit tiers, each with its own message (see ``default_rules``)
- Retry-After and X-RateLimit-* headers
- Memory-efficient storage with lazy expiration

All middleware follow the async signature:
    async def __call__(self, request, ctx, next_handler) -> Response
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    TYPE_CHECKING,
)

from fastpurchase.faults import RateLimitExceededFault
from fastpurchase.request import Request
from fastpurchase.response import Response

if TYPE_CHECKING:
    from fastpurchase.controller.base import RequestCtx

Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]

logger = logging.getLogger("fastpurchase.ratelimit")


# ─── Key extractors ──────────────────────────────────────────────────────────

def ip_key_extractor(request: Request) -> str:
    """Extract the socket peer IP as rate-limit key. Client headers are ignored."""
    return f"ip:{request.client_ip()}"


def forwarded_key_extractor(request: Request) -> str:
    """
    Extract the first ``X-Forwarded-For`` hop as rate-limit key.

    Only safe behind a reverse proxy that overwrites the header; falls back
    to the peer IP when the header is absent.
    """
    forwarded = request.header("x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return f"ip:{forwarded.split(',')[0].strip()}"
    return ip_key_extractor(request)


# ─── Sliding Window Counter ──────────────────────────────────────────────────

class _SlidingWindowCounter:
    """
    Sliding window counter using two adjacent fixed windows.

    Algorithm:
        weighted_count = prev_count * overlap_ratio + current_count
    """

    __slots__ = ("window_size", "max_requests", "_prev_count", "_curr_count", "_curr_start")

    def __init__(self, window_size: float, max_requests: int):
        self.window_size = window_size
        self.max_requests = max_requests
        self._curr_start = time.monotonic()
        self._curr_count = 0
        self._prev_count = 0

    def consume(self) -> Tuple[bool, float]:
        """
        Try to record a request.

        Returns:
            (allowed, retry_after_seconds)
        """
        now = time.monotonic()
        self._advance_windows(now)

        elapsed_in_window = now - self._curr_start
        weight = max(0.0, 1.0 - elapsed_in_window / self.window_size)
        weighted = self._prev_count * weight + self._curr_count

        if weighted >= self.max_requests:
            retry = self.window_size - elapsed_in_window
            return False, max(0.1, retry)

        self._curr_count += 1
        return True, 0.0

    def _advance_windows(self, now: float) -> None:
        window_end = self._curr_start + self.window_size
        if now < window_end:
            return
        windows_passed = int((now - self._curr_start) / self.window_size)
        if windows_passed >= 2:
            self._prev_count = 0
            self._curr_count = 0
            self._curr_start = now
        else:
            self._prev_count = self._curr_count
            self._curr_count = 0
            self._curr_start = window_end

    @property
    def remaining(self) -> int:
        elapsed = time.monotonic() - self._curr_start
        weight = max(0.0, 1.0 - elapsed / self.window_size)
        used = int(self._prev_count * weight + self._curr_count)
        return max(0, self.max_requests - used)

    @property
    def reset_after(self) -> float:
        return max(0.0, self._curr_start + self.window_size - time.monotonic())


# ─── Expiry-aware bucket store ────────────────────────────────────────────────

class _BucketStore:
    """
    In-memory store for rate-limit buckets.

    Entries idle for longer than ``idle_ttl`` are evicted on a lazy schedule.
    """

    def __init__(self, cleanup_interval: float = 60.0, idle_ttl: float = 1800.0):
        self._buckets: Dict[str, Any] = {}
        self._last_access: Dict[str, float] = {}
        self._cleanup_interval = cleanup_interval
        self._idle_ttl = idle_ttl
        self._last_cleanup = time.monotonic()

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        now = time.monotonic()
        self._last_access[key] = now

        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = factory()
            self._buckets[key] = bucket

        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup(now)

        return bucket

    def clear(self) -> None:
        self._buckets.clear()
        self._last_access.clear()

    def __len__(self) -> int:
        return len(self._buckets)

    def _cleanup(self, now: float) -> None:
        self._last_cleanup = now
        expired = [k for k, t in self._last_access.items() if now - t > self._idle_ttl]
        for k in expired:
            self._buckets.pop(k, None)
            self._last_access.pop(k, None)


# ─── Rate Limit Configuration ────────────────────────────────────────────────

class RateLimitRule:
    """
    A single rate-limit tier.

    Attributes:
        name: Tier name, used to scope bucket keys.
        limit: Maximum requests per window.
        window: Window size in seconds.
        message: Envelope ``message`` of the 429 response.
        errors: Envelope ``errors`` of the 429 response.
        key_func: Extracts the client key from a request. Defaults to IP.
        scope: Path prefix the rule applies to ("*" = all).
        methods: HTTP methods the rule applies to (empty = all).
        exact: Match ``scope`` as a whole path instead of a prefix.
    """

    __slots__ = (
        "name", "limit", "window", "message", "errors",
        "key_func", "scope", "methods", "exact",
    )

    def __init__(
        self,
        name: str,
        limit: int = 100,
        window: float = 900.0,
        *,
        message: str = "Too many requests, please try again later.",
        errors: Optional[List[str]] = None,
        key_func: Optional[Callable[[Request], Optional[str]]] = None,
        scope: str = "*",
        methods: Optional[List[str]] = None,
        exact: bool = False,
    ):
        self.name = name
        self.limit = limit
        self.window = window
        self.message = message
        self.errors = errors or ["Rate limit exceeded. Please wait before making more requests."]
        self.key_func = key_func or ip_key_extractor
        self.scope = scope
        self.methods = methods or []
        self.exact = exact

    def matches(self, request: Request) -> bool:
        """Check if this rule applies to the given request."""
        if self.methods and request.method not in self.methods:
            return False
        if self.scope == "*":
            return True
        path = request.path.rstrip("/") or "/"
        if self.exact:
            return path == self.scope
        return path == self.scope or path.startswith(self.scope.rstrip("/") + "/")

    def create_bucket(self) -> _SlidingWindowCounter:
        return _SlidingWindowCounter(window_size=self.window, max_requests=self.limit)

    def __repr__(self) -> str:
        return f"<RateLimitRule {self.name} {self.limit}/{self.window:g}s scope={self.scope}>"


def default_rules(window: float = 900.0, *, trust_proxy: bool = False) -> List[RateLimitRule]:
    """
    The service's rate-limit tiers, all keyed by client IP.

    With ``trust_proxy`` the client IP is read from ``X-Forwarded-For``
    instead of the socket peer.
    """
    key_func = forwarded_key_extractor if trust_proxy else ip_key_extractor
    return [
        RateLimitRule(
            "general", 100, window,
            key_func=key_func,
            message="Too many requests from this IP, please try again later.",
            errors=["Rate limit exceeded. Please wait before making more requests."],
        ),
        RateLimitRule(
            "auth", 5, window,
            key_func=key_func,
            scope="/auth",
            message="Too many authentication attempts, please try again later.",
            errors=["Too many login/register attempts. Please wait 15 minutes before trying again."],
        ),
        RateLimitRule(
            "create", 10, window,
            key_func=key_func,
            scope="/products", methods=["POST"], exact=True,
            message="Too many product creation requests, please try again later.",
            errors=["Rate limit exceeded for product creation. Please wait before creating more products."],
        ),
        RateLimitRule(
            "order", 20, window,
            key_func=key_func,
            scope="/orders", methods=["POST"], exact=True,
            message="Too many order requests, please try again later.",
            errors=["Rate limit exceeded for order creation. Please wait before placing more orders."],
        ),
        RateLimitRule(
            "read", 200, window,
            key_func=key_func,
            methods=["GET"],
            message="Too many requests, please try again later.",
            errors=["Rate limit exceeded for read operations. Please slow down your requests."],
        ),
    ]


# ─── Rate Limit Middleware ────────────────────────────────────────────────────

class RateLimitMiddleware:
    """
    Multi-tier rate limiting middleware.

    Every matching rule consumes from its own bucket, in order. The first
    exhausted bucket short-circuits with a 429 failure envelope.

    Headers:
    - X-RateLimit-Limit / X-RateLimit-Remaining / X-RateLimit-Reset for the
      most specific (last) matching rule
    - Retry-After on 429

    Args:
        rules: Tiers to evaluate. Defaults to ``default_rules()``.
        enabled: When False every request passes untouched.
        include_headers: Include rate-limit headers on all responses.
        exempt_paths: Paths that skip rate limiting (e.g. health checks).
    """

    def __init__(
        self,
        rules: Optional[List[RateLimitRule]] = None,
        *,
        enabled: bool = True,
        include_headers: bool = True,
        exempt_paths: Optional[List[str]] = None,
    ):
        self._rules = rules if rules is not None else default_rules()
        self.enabled = enabled
        self._include_headers = include_headers
        self._exempt_paths = set(exempt_paths if exempt_paths is not None else ["/health"])
        self._store = _BucketStore()
        self._lock = asyncio.Lock()

    @property
    def rules(self) -> List[RateLimitRule]:
        return list(self._rules)

    def reset(self) -> None:
        """Forget every client's counters."""
        self._store.clear()

    async def __call__(self, request: Request, ctx: "RequestCtx", next_handler: Handler) -> Response:
        if not self.enabled or request.path in self._exempt_paths:
            return await next_handler(request, ctx)

        applied: Optional[Tuple[RateLimitRule, Any]] = None
        async with self._lock:
            for rule in self._rules:
                if not rule.matches(request):
                    continue
                key = rule.key_func(request)
                if key is None:
                    continue

                bucket = self._store.get_or_create(f"{rule.name}:{key}", rule.create_bucket)
                allowed, retry_after = bucket.consume()
                if not allowed:
                    logger.warning(f"Rate limit '{rule.name}' exceeded for {key} on {request.method} {request.path}")
                    return self._rate_limited_response(rule, bucket, retry_after)
                applied = (rule, bucket)

        response = await next_handler(request, ctx)

        if self._include_headers and applied is not None:
            self._apply_headers(response, *applied)
        return response

    def _rate_limited_response(self, rule: RateLimitRule, bucket: Any, retry_after: float) -> Response:
        fault = RateLimitExceededFault(
            rule.message,
            rule.errors,
            limit=rule.limit,
            window=rule.window,
            retry_after=retry_after,
        )
        headers = {
            "retry-after": str(int(math.ceil(retry_after))),
            "x-ratelimit-limit": str(rule.limit),
            "x-ratelimit-remaining": "0",
            "x-ratelimit-reset": str(int(math.ceil(bucket.reset_after))),
            "x-fault-code": fault.code,
        }
        return Response.error(fault.message, fault.errors, status=fault.status, headers=headers)

    def _apply_headers(self, response: Response, rule: RateLimitRule, bucket: Any) -> None:
        response.headers["x-ratelimit-limit"] = str(rule.limit)
        response.headers["x-ratelimit-remaining"] = str(max(0, bucket.remaining))
        response.headers["x-ratelimit-reset"] = str(int(math.ceil(bucket.reset_after)))


__all__ = [
    "RateLimitMiddleware",
    "RateLimitRule",
    "default_rules",
    "forwarded_key_extractor",
    "ip_key_extractor",
]
