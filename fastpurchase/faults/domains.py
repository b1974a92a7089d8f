"""
Framework-level faults.

Storage, routing, request-body and rate-limit faults raised by the
runtime itself rather than by a feature module.
"""

from __future__ import annotations

from typing import Any

from .core import (
    Fault,
    FaultDomain,
    Severity,
    ValidationFault,
    NotFoundFault,
    InternalFault,
)


# ============================================================================
# Storage
# ============================================================================

class QueryFault(InternalFault):
    """Query execution failed."""

    code = "QUERY_FAILED"
    domain = FaultDomain.IO

    def __init__(self, model: str, operation: str, reason: str, **kwargs: Any):
        super().__init__(
            errors=["An unexpected error occurred"],
            retryable=True,
            metadata={"model": model, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )
        self.reason = reason

    def __str__(self) -> str:
        return f"[{self.code}] Query on '{self.metadata['model']}' ({self.metadata['operation']}) failed: {self.reason}"


class DatabaseConnectionFault(InternalFault):
    """Database connection failed."""

    code = "DB_CONNECTION_FAILED"
    domain = FaultDomain.IO

    def __init__(self, url: str, reason: str, **kwargs: Any):
        super().__init__(
            errors=["An unexpected error occurred"],
            severity=Severity.FATAL,
            retryable=True,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )
        self.reason = reason

    def __str__(self) -> str:
        return f"[{self.code}] Database connection failed ({self.metadata['url']}): {self.reason}"


# ============================================================================
# Routing / request
# ============================================================================

class RouteNotFoundFault(NotFoundFault):
    """No controller route matches the request."""

    code = "ROUTE_NOT_FOUND"

    def __init__(self, method: str, path: str):
        super().__init__(
            "Route not found",
            [f"Cannot {method} {path}"],
            metadata={"method": method, "path": path},
        )


class InvalidJSONFault(ValidationFault):
    """Request body is not valid JSON."""

    code = "INVALID_JSON"

    def __init__(self, reason: str = ""):
        super().__init__(
            "Invalid JSON",
            ["Request body must be valid JSON"],
            metadata={"reason": reason},
        )


class RateLimitExceededFault(Fault):
    """Client exceeded a rate-limit tier."""

    status = 429
    code = "RATE_LIMIT_EXCEEDED"
    domain = FaultDomain.SECURITY
    severity = Severity.WARN

    def __init__(self, message: str, errors: list[str], *, limit: int, window: float, retry_after: float):
        super().__init__(
            message=message,
            errors=errors,
            public=True,
            retryable=True,
            metadata={"limit": limit, "window": window, "retry_after": retry_after},
        )
