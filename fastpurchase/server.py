"""
FastPurchaseServer - wires configuration, storage, services, controllers
and middleware into one ASGI application with lifecycle management.

Flow:
    Settings -> Container (db, cache, auth, services) -> ControllerRouter
    -> MiddlewareStack -> ASGIAdapter
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Type

from .asgi import ASGIAdapter
from .auth import PasswordHasher, PasswordPolicy, TokenConfig, TokenManager
from .cache import CacheService, MemoryBackend, ResponseCacheMiddleware
from .config import Settings
from .controller import Controller, ControllerEngine, ControllerRouter
from .db import Database, create_schema
from .di import Container
from .middleware import ExceptionMiddleware, MiddlewareStack, RequestIdMiddleware
from .middleware_ext import LoggingMiddleware, RateLimitMiddleware, default_rules
from .modules.accounts import AccountController, AccountRepository, AccountService
from .modules.health import HealthController
from .modules.orders import OrderController, OrderEngine, OrderRepository, OrderService
from .modules.products import ProductController, ProductRepository, ProductService

CONTROLLERS: List[Type[Controller]] = [
    HealthController,
    AccountController,
    ProductController,
    OrderController,
]


class FastPurchaseServer:
    """
    Main server.

    Integrates:
    - Database (aiosqlite) with schema creation on startup
    - CacheService bound to the server lifecycle
    - TokenManager / PasswordHasher / PasswordPolicy
    - Controller routing and the middleware stack
    - ASGI adapter for HTTP and lifespan
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger("fastpurchase.server")

        self.container = Container()
        self._register_services()

        self.controller_router = ControllerRouter()
        self.controller_engine = ControllerEngine()
        for controller_cls in CONTROLLERS:
            self.controller_router.add_controller(controller_cls)

        self.middleware_stack = MiddlewareStack()
        self._setup_middleware()

        self._startup_complete = False
        self._startup_lock: Optional[asyncio.Lock] = None

        self.app = ASGIAdapter(
            controller_router=self.controller_router,
            controller_engine=self.controller_engine,
            middleware_stack=self.middleware_stack,
            server=self,
        )

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _register_services(self) -> None:
        s = self.settings
        c = self.container

        self.db = Database(s.database_url)
        self.cache = CacheService(MemoryBackend(max_size=s.cache_max_size), default_ttl=s.cache_ttl)
        self.token_manager = TokenManager(TokenConfig(secret=s.jwt_secret, ttl=s.jwt_ttl))
        hasher = PasswordHasher(
            time_cost=s.argon2_time_cost,
            memory_cost=s.argon2_memory_cost,
            parallelism=s.argon2_parallelism,
        )
        policy = PasswordPolicy()

        products = ProductRepository(self.db)
        orders = OrderRepository(self.db)
        accounts = AccountRepository(self.db)

        c.register_instance(Settings, s)
        c.register_instance(Database, self.db)
        c.register_instance(CacheService, self.cache)
        c.register_instance(TokenManager, self.token_manager)
        c.register_instance(PasswordHasher, hasher)
        c.register_instance(PasswordPolicy, policy)
        c.register_instance(ProductRepository, products)
        c.register_instance(OrderRepository, orders)
        c.register_instance(AccountRepository, accounts)
        c.register_factory(ProductService, lambda: ProductService(products, self.cache))
        c.register_factory(OrderEngine, lambda: OrderEngine(self.db, products, orders, self.cache))
        c.register_factory(OrderService, lambda: OrderService(orders))
        c.register_factory(
            AccountService,
            lambda: AccountService(accounts, hasher, policy, self.token_manager),
        )

    def _setup_middleware(self) -> None:
        s = self.settings
        self.middleware_stack.add(RequestIdMiddleware(), priority=10, name="request_id")
        self.middleware_stack.add(ExceptionMiddleware(debug=s.debug), priority=20, name="exception")
        self.middleware_stack.add(LoggingMiddleware(format=s.log_format), priority=30, name="logging")
        self.middleware_stack.add(
            RateLimitMiddleware(
                default_rules(window=s.rate_limit_window, trust_proxy=s.rate_limit_trust_proxy),
                enabled=s.rate_limit_enabled,
            ),
            priority=40,
            name="rate_limit",
        )
        self.middleware_stack.add(ResponseCacheMiddleware(self.cache), priority=50, name="response_cache")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self) -> None:
        """
        Connect the database, create missing tables and start the cache.

        Idempotent; concurrent callers wait for the first one.
        """
        if self._startup_complete:
            return
        if self._startup_lock is None:
            self._startup_lock = asyncio.Lock()

        async with self._startup_lock:
            if self._startup_complete:
                return
            self.logger.info("Starting fastpurchase server...")
            await self.db.connect()
            if await create_schema(self.db):
                self.logger.info("Database schema created")
            await self.cache.initialize()
            self._startup_complete = True
            self.logger.info(
                f"Server ready: {len(self.controller_router.routes)} routes, "
                f"middleware {self.middleware_stack.names()}"
            )

    async def shutdown(self) -> None:
        """Stop the cache and disconnect the database. Safe to call twice."""
        if not self._startup_complete:
            return
        self.logger.info("Shutting down fastpurchase server...")
        await self.cache.shutdown()
        await self.db.disconnect()
        self._startup_complete = False
        self.logger.info("Server stopped")

    def get_asgi_app(self) -> ASGIAdapter:
        """Get the ASGI application for external servers."""
        return self.app


def create_app(settings: Optional[Settings] = None) -> ASGIAdapter:
    """
    ASGI application factory.

    ``uvicorn --factory fastpurchase.server:create_app`` loads settings from
    the environment and ``.env``.
    """
    if settings is None:
        settings = Settings.load()
    return FastPurchaseServer(settings).get_asgi_app()
