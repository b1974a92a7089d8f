"""
Faults - Core types and HTTP-facing fault taxonomy.

Defines:
- Severity levels
- FaultDomain (explicit fault domains)
- Fault base class (structured fault objects)
- The six taxonomy bases every module fault derives from:
  ValidationFault, AuthenticationFault, AuthorizationFault,
  NotFoundFault, ConflictFault, InternalFault
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the log level used when the fault is rendered.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Fatal, unrecoverable


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    Modules declare their own domain next to their faults.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route matching errors")
FaultDomain.IO = FaultDomain("io", "Storage and I/O operations")
FaultDomain.SECURITY = FaultDomain("security", "Security and auth")
FaultDomain.INPUT = FaultDomain("input", "Request input errors")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault carries everything needed to render the standard response
    envelope without the renderer knowing about the raising module:

    Attributes:
        code: Stable machine-readable identifier (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable summary (the envelope ``message``)
        errors: User-facing detail lines (the envelope ``errors``)
        status: HTTP status this fault maps to
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain
        retryable: Whether the caller may safely retry
        public: Whether ``message``/``errors`` are safe to expose to clients
        metadata: Additional context for logs (never rendered)

    Example:
        ```python
        raise Fault(
            code="PRODUCT_NOT_FOUND",
            message="Product not found",
            errors=["Product with ID 42 does not exist"],
            status=404,
            domain=PRODUCTS_DOMAIN,
            public=True,
        )
        ```
    """

    status: int = 500

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        errors: Optional[Sequence[str]] = None,
        status: Optional[int] = None,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        if status is not None:
            self.status = status
        self.errors = list(errors) if errors else [self.message]
        self.severity = severity or getattr(self, "severity", None) or Severity.ERROR
        self.retryable = retryable
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"status={self.status}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging
        """
        return {
            "code": self.code,
            "message": self.message,
            "errors": self.errors,
            "status": self.status,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# Taxonomy
# ============================================================================

class ValidationFault(Fault):
    """Malformed, missing or out-of-range input."""
    status = 400
    code = "VALIDATION_FAILED"
    severity = Severity.INFO
    domain = FaultDomain.INPUT

    def __init__(self, message: str = "Validation failed", errors: Optional[Sequence[str]] = None, **kwargs):
        kwargs.setdefault("public", True)
        super().__init__(message=message, errors=errors, **kwargs)


class AuthenticationFault(Fault):
    """Missing, invalid or expired credential."""
    status = 401
    code = "AUTHENTICATION_FAILED"
    severity = Severity.WARN
    domain = FaultDomain.SECURITY

    def __init__(self, message: str = "Authentication failed", errors: Optional[Sequence[str]] = None, **kwargs):
        kwargs.setdefault("public", True)
        super().__init__(message=message, errors=errors, **kwargs)


class AuthorizationFault(Fault):
    """Valid credential, insufficient role."""
    status = 403
    code = "ACCESS_DENIED"
    severity = Severity.WARN
    domain = FaultDomain.SECURITY

    def __init__(self, message: str = "Access denied", errors: Optional[Sequence[str]] = None, **kwargs):
        kwargs.setdefault("public", True)
        super().__init__(message=message, errors=errors, **kwargs)


class NotFoundFault(Fault):
    """Referenced entity does not exist."""
    status = 404
    code = "NOT_FOUND"
    severity = Severity.INFO
    domain = FaultDomain.ROUTING

    def __init__(self, message: str = "Not found", errors: Optional[Sequence[str]] = None, **kwargs):
        kwargs.setdefault("public", True)
        super().__init__(message=message, errors=errors, **kwargs)


class ConflictFault(Fault):
    """Business-rule violation against current state (stock, uniqueness)."""
    status = 400
    code = "CONFLICT"
    severity = Severity.WARN
    domain = FaultDomain.SYSTEM

    def __init__(self, message: str = "Conflict", errors: Optional[Sequence[str]] = None, **kwargs):
        kwargs.setdefault("public", True)
        super().__init__(message=message, errors=errors, **kwargs)


class InternalFault(Fault):
    """Storage or unexpected failure. Detail stays in metadata."""
    status = 500
    code = "INTERNAL_ERROR"
    severity = Severity.ERROR
    domain = FaultDomain.SYSTEM

    def __init__(self, message: str = "Internal server error", errors: Optional[Sequence[str]] = None, **kwargs):
        super().__init__(message=message, errors=errors, **kwargs)
