"""
Shared test fixtures and helpers for the fastpurchase test suite.

Provides:
- make_settings: Settings for an in-memory database, cheap argon2, no rate limiting
- db: connected in-memory Database with the schema applied
- server / client: a started FastPurchaseServer driven through httpx
- create_user / create_product / bearer: seeding helpers
"""

import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from fastpurchase.config import ConfigLoader, Settings
from fastpurchase.db import Database, create_schema
from fastpurchase.modules.accounts import AccountRepository
from fastpurchase.modules.products import NewProduct, ProductRepository
from fastpurchase.server import FastPurchaseServer

TEST_SECRET = "test-secret-key-keep-it-stable"
STRONG_PASSWORD = "Str0ngP@ss!"


# ============================================================================
# Settings
# ============================================================================


def make_settings(
    *,
    database_url: str = "sqlite:///:memory:",
    rate_limit_enabled: bool = False,
    rate_limit_trust_proxy: bool = False,
    cache_ttl: int = 300,
    jwt_expires_in: str = "24h",
) -> Settings:
    """Settings for tests: nothing is read from the environment or a .env file."""
    loader = ConfigLoader.load(
        env_file=None,
        environ={},
        overrides={
            "database": {"url": database_url},
            "auth": {
                "jwt_secret": TEST_SECRET,
                "jwt_expires_in": jwt_expires_in,
                "argon2": {"time_cost": 1, "memory_cost": 8, "parallelism": 1},
            },
            "cache": {"ttl": cache_ttl},
            "rate_limit": {"enabled": rate_limit_enabled, "trust_proxy": rate_limit_trust_proxy},
            "logging": {"level": "WARNING"},
        },
    )
    return Settings.from_loader(loader)


# ============================================================================
# Seeding helpers
# ============================================================================


async def create_user(db: Database, *, role: str = "user", username: Optional[str] = None) -> Dict[str, Any]:
    """Insert an account directly; the password hash is a placeholder."""
    tag = uuid.uuid4().hex[:10]
    return await AccountRepository(db).insert(
        username or f"user{tag}",
        f"user-{tag}@example.com",
        "$argon2id$placeholder",
        role,
    )


async def create_product(
    db: Database,
    *,
    name: str = "Test Product",
    price: str = "10.00",
    stock: int = 5,
    category: str = "General",
    description: str = "A product used by the test suite",
    owner_id: Optional[str] = None,
) -> Dict[str, Any]:
    product = NewProduct(
        name=name,
        description=description,
        price=Decimal(price),
        stock=stock,
        category=category,
        images=[],
    )
    return await ProductRepository(db).insert(product, owner_id)


async def stock_of(db: Database, product_id: str) -> Optional[int]:
    return await ProductRepository(db).current_stock(product_id)


async def count_rows(db: Database, table: str) -> int:
    return await db.fetch_val(f"SELECT COUNT(*) FROM {table}")


async def bearer(server: FastPurchaseServer, user: Dict[str, Any]) -> Dict[str, str]:
    """Authorization header for ``user`` signed by the server's token manager."""
    token = await server.token_manager.issue_access_token(user["id"], user["username"], user["role"])
    return {"Authorization": f"Bearer {token}"}


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    client: Optional[tuple] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": client or ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b""):
    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}
    return receive


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest_asyncio.fixture
async def db():
    """Connected in-memory database with all tables."""
    database = Database("sqlite:///:memory:")
    await database.connect()
    await create_schema(database)
    yield database
    await database.disconnect()


@pytest_asyncio.fixture
async def server(settings):
    """A started server; each test gets a fresh one so state never leaks."""
    srv = FastPurchaseServer(settings)
    await srv.startup()
    yield srv
    await srv.shutdown()


@pytest_asyncio.fixture
async def client(server):
    """httpx client wired to the server's ASGI app in-process."""
    transport = httpx.ASGITransport(app=server.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest_asyncio.fixture
async def user(server):
    return await create_user(server.db)


@pytest_asyncio.fixture
async def admin(server):
    return await create_user(server.db, role="admin")


@pytest_asyncio.fixture
async def user_headers(server, user):
    return await bearer(server, user)


@pytest_asyncio.fixture
async def admin_headers(server, admin):
    return await bearer(server, admin)
