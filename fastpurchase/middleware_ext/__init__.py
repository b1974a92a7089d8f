"""
Extended middleware components.

Rate Limiting:
- RateLimitMiddleware: sliding window tiers keyed by client IP

Logging:
- LoggingMiddleware: access logging (dev, combined, structured JSON)
"""

from .logging import (
    LoggingMiddleware,
    AccessRecord,
    CombinedLogFormatter,
    StructuredLogFormatter,
    DevLogFormatter,
)
from .rate_limit import (
    RateLimitMiddleware,
    RateLimitRule,
    default_rules,
    forwarded_key_extractor,
    ip_key_extractor,
)

__all__ = [
    "LoggingMiddleware",
    "AccessRecord",
    "CombinedLogFormatter",
    "StructuredLogFormatter",
    "DevLogFormatter",
    "RateLimitMiddleware",
    "RateLimitRule",
    "default_rules",
    "forwarded_key_extractor",
    "ip_key_extractor",
]
