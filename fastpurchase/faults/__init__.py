"""
Faults - structured error handling.

Every failure path in the service raises a ``Fault``; the exception
middleware renders it as the standard response envelope.
"""

from .core import (
    Severity,
    FaultDomain,
    Fault,
    ValidationFault,
    AuthenticationFault,
    AuthorizationFault,
    NotFoundFault,
    ConflictFault,
    InternalFault,
)
from .domains import (
    QueryFault,
    DatabaseConnectionFault,
    RouteNotFoundFault,
    InvalidJSONFault,
    RateLimitExceededFault,
)

__all__ = [
    "Severity",
    "FaultDomain",
    "Fault",
    "ValidationFault",
    "AuthenticationFault",
    "AuthorizationFault",
    "NotFoundFault",
    "ConflictFault",
    "InternalFault",
    "QueryFault",
    "DatabaseConnectionFault",
    "RouteNotFoundFault",
    "InvalidJSONFault",
    "RateLimitExceededFault",
]
