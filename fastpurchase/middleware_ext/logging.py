"""
Access Logging Middleware.

Features:
- Three line formats: ``dev`` (color-coded), ``combined`` (Apache CLF) and
  ``structured`` (one JSON object per line)
- Request timing, slow-request warnings and 5xx escalation
- Authenticated user id and request id in every record
- Path filtering (health checks are skipped)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Set, TYPE_CHECKING

from fastpurchase.request import Request
from fastpurchase.response import Response

if TYPE_CHECKING:
    from fastpurchase.controller.base import RequestCtx

Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]

# ─── ANSI color codes for dev mode ────────────────────────────────────────────

_RESET = "\033[0m"
_DIM = "\033[2m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_CYAN = "\033[36m"
_BLUE = "\033[34m"

_METHOD_COLORS = {
    "GET": _GREEN,
    "POST": _BLUE,
    "PUT": _YELLOW,
    "DELETE": _RED,
}


def _status_color(status: int) -> str:
    if status < 300:
        return _GREEN
    if status < 400:
        return _CYAN
    if status < 500:
        return _YELLOW
    return _RED


@dataclass
class AccessRecord:
    """One completed request."""
    method: str
    path: str
    query: str
    status: int
    duration_ms: float
    content_length: int
    client_ip: str
    user_agent: str
    request_id: str
    user_id: Optional[str] = None


# ─── Log Format Builders ─────────────────────────────────────────────────────

class AccessLogFormatter:
    """Pluggable formatter for access log lines."""

    def format(self, record: AccessRecord) -> str:
        raise NotImplementedError


class CombinedLogFormatter(AccessLogFormatter):
    """Apache Combined Log Format."""

    def format(self, record: AccessRecord) -> str:
        now = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
        target = f"{record.path}?{record.query}" if record.query else record.path
        return (
            f'{record.client_ip} - {record.user_id or "-"} [{now}] '
            f'"{record.method} {target} HTTP/1.1" '
            f'{record.status} {record.content_length} '
            f'"-" "{record.user_agent}" '
            f'{record.duration_ms:.1f}ms'
        )


class StructuredLogFormatter(AccessLogFormatter):
    """JSON-structured log output."""

    def format(self, record: AccessRecord) -> str:
        data = asdict(record)
        data["duration_ms"] = round(record.duration_ms, 2)
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        return json.dumps({k: v for k, v in data.items() if v not in (None, "")}, default=str)


class DevLogFormatter(AccessLogFormatter):
    """Color-coded developer-friendly format."""

    def format(self, record: AccessRecord) -> str:
        mc = _METHOD_COLORS.get(record.method, _DIM)
        sc = _status_color(record.status)
        duration = record.duration_ms
        if duration > 1000:
            dur = f"{_RED}{duration:.0f}ms{_RESET}"
        elif duration > 200:
            dur = f"{_YELLOW}{duration:.0f}ms{_RESET}"
        else:
            dur = f"{_DIM}{duration:.0f}ms{_RESET}"
        return f"{mc}{record.method:7}{_RESET} {record.path:40} {sc}{record.status}{_RESET} {dur}"


_FORMATTERS = {
    "combined": CombinedLogFormatter,
    "structured": StructuredLogFormatter,
    "dev": DevLogFormatter,
}


def get_formatter(name: str) -> AccessLogFormatter:
    try:
        return _FORMATTERS[name]()
    except KeyError:
        raise ValueError(f"Unknown access log format '{name}' (expected one of {sorted(_FORMATTERS)})") from None


# ─── Logging Middleware ───────────────────────────────────────────────────────

class LoggingMiddleware:
    """
    HTTP access logging middleware.

    Args:
        logger_name: Logger name (default "fastpurchase.access").
        format: "dev", "combined", "structured" or an ``AccessLogFormatter``.
        level: Log level for successful requests.
        slow_threshold_ms: Warn on requests slower than this (ms).
        skip_paths: Paths to skip logging (e.g. health checks).
    """

    def __init__(
        self,
        logger_name: str = "fastpurchase.access",
        format: str | AccessLogFormatter = "dev",
        level: int = logging.INFO,
        slow_threshold_ms: float = 1000.0,
        skip_paths: Optional[Set[str]] = None,
    ):
        self.logger = logging.getLogger(logger_name)
        self._level = level
        self._slow_threshold = slow_threshold_ms
        self._skip_paths = skip_paths if skip_paths is not None else {"/health", "/favicon.ico"}
        self._formatter = get_formatter(format) if isinstance(format, str) else format

    async def __call__(self, request: Request, ctx: "RequestCtx", next_handler: Handler) -> Response:
        if request.path in self._skip_paths:
            return await next_handler(request, ctx)

        start = time.perf_counter()
        try:
            response = await next_handler(request, ctx)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.error(f"{request.method} {request.path} - EXCEPTION ({duration_ms:.1f}ms)")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        identity = ctx.identity
        record = AccessRecord(
            method=request.method,
            path=request.path,
            query=request.query_string,
            status=response.status,
            duration_ms=duration_ms,
            content_length=len(response.body),
            client_ip=request.client_ip(),
            user_agent=request.header("user-agent") or "-",
            request_id=ctx.request_id or "-",
            user_id=identity.id if identity is not None else None,
        )
        line = self._formatter.format(record)

        if response.status >= 500:
            self.logger.error(line)
        elif duration_ms > self._slow_threshold:
            self.logger.warning(f"SLOW {line}")
        else:
            self.logger.log(self._level, line)

        return response


__all__ = [
    "LoggingMiddleware",
    "AccessRecord",
    "AccessLogFormatter",
    "CombinedLogFormatter",
    "StructuredLogFormatter",
    "DevLogFormatter",
    "get_formatter",
]
