"""
fastpurchase - async e-commerce API

- Catalog: paginated, filterable product listing with admin writes
- Orders: atomic order placement with no-oversell stock decrements
- Accounts: argon2id credentials and HS256 bearer tokens
- Runtime: ASGI adapter, controller routing, middleware, response cache
"""

__version__ = "0.1.0"

from .config import ConfigError, ConfigLoader, Settings
from .request import Request
from .response import Response
from .server import FastPurchaseServer, create_app

__all__ = [
    "__version__",
    "ConfigError",
    "ConfigLoader",
    "Settings",
    "Request",
    "Response",
    "FastPurchaseServer",
    "create_app",
]
