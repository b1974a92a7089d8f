"""fp CLI - Main Entry Point.

Commands:
    serve        - Run the HTTP API under uvicorn
    initdb       - Create database tables
    createadmin  - Seed an admin account
    seed         - Insert demo products owned by an admin
"""

import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Optional

import click

from ..config import ConfigError, Settings
from ..faults import Fault
from . import __cli_name__, __version__
from .output import error, info, kv, success

DEMO_PRODUCTS = [
    {
        "name": "Mechanical Keyboard",
        "description": "Tenkeyless keyboard with hot-swappable brown switches",
        "price": 89.99,
        "stock": 25,
        "category": "Electronics",
    },
    {
        "name": "Wireless Mouse",
        "description": "Ergonomic 2.4GHz mouse with a rechargeable battery",
        "price": 29.5,
        "stock": 60,
        "category": "Electronics",
    },
    {
        "name": "Espresso Beans",
        "description": "One kilogram of medium roast whole espresso beans",
        "price": 18.0,
        "stock": 40,
        "category": "Groceries",
    },
    {
        "name": "Trail Running Shoes",
        "description": "Lightweight trail shoes with a rock plate and grippy outsole",
        "price": 124.0,
        "stock": 12,
        "category": "Sports",
    },
]


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by every command."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_settings(ctx: click.Context) -> Settings:
    try:
        return Settings.load(env_file=ctx.obj["env_file"])
    except ConfigError as e:
        error(f"✗ Configuration error: {e}")
        sys.exit(1)


def _run_with_server(settings: Settings, action: Callable[[Any], Awaitable[None]]) -> None:
    """Start the server's resources, run ``action(server)``, then stop them."""
    from ..server import FastPurchaseServer

    async def runner() -> None:
        server = FastPurchaseServer(settings)
        await server.startup()
        try:
            await action(server)
        finally:
            await server.shutdown()

    try:
        asyncio.run(runner())
    except Fault as e:
        error(f"✗ {e.message}: {'; '.join(e.errors)}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option("--env-file", default=".env", show_default=True, help="dotenv file to read settings from")
@click.pass_context
def cli(ctx, env_file: str):
    """fastpurchase e-commerce API."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@cli.command("serve")
@click.option("--host", type=str, default=None, help="Bind host (default from config)")
@click.option("--port", type=int, default=None, help="Bind port (default from config)")
@click.option("--reload/--no-reload", default=False, help="Enable hot-reload")
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int], reload: bool):
    """
    Run the API server.

    Examples:
      fp serve
      fp serve --port=8080 --reload
    """
    import uvicorn

    settings = _load_settings(ctx)
    configure_logging(settings.log_level)
    host = host or settings.host
    port = port or settings.port

    info("Starting fastpurchase")
    kv("Host", f"{host}:{port}")
    kv("Database", settings.database_url)
    kv("Rate limit", "on" if settings.rate_limit_enabled else "off")

    uvicorn.run(
        "fastpurchase.server:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


@cli.command("initdb")
@click.pass_context
def initdb(ctx):
    """Create database tables that do not exist yet."""
    settings = _load_settings(ctx)
    configure_logging(settings.log_level)

    async def action(server) -> None:
        # startup() already ran create_schema
        tables = await server.db.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        success(f"✓ Schema ready ({', '.join(t['name'] for t in tables)})")

    _run_with_server(settings, action)


@cli.command("createadmin")
@click.argument("username")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def createadmin(ctx, username: str, email: str, password: str):
    """
    Create an admin account.

    Examples:
      fp createadmin root admin@example.com
    """
    from ..modules.accounts import AccountService

    settings = _load_settings(ctx)
    configure_logging(settings.log_level)

    async def action(server) -> None:
        service = server.container.resolve(AccountService)
        account = await service.create_admin(username, email, password)
        success(f"✓ Admin {account['username']} created")
        kv("ID", account["id"])

    _run_with_server(settings, action)


@cli.command("seed")
@click.pass_context
def seed(ctx):
    """Insert demo products owned by the first admin account."""
    from ..modules.accounts import AccountRepository
    from ..modules.products import ProductService

    settings = _load_settings(ctx)
    configure_logging(settings.log_level)

    async def action(server) -> None:
        admin = await server.container.resolve(AccountRepository).find_admin()
        if admin is None:
            error("✗ No admin account found; run `fp createadmin` first")
            sys.exit(1)
        service = server.container.resolve(ProductService)
        for payload in DEMO_PRODUCTS:
            product = await service.create_product(admin["id"], payload)
            kv(product["name"], product["id"], key_width=24)
        success(f"✓ Seeded {len(DEMO_PRODUCTS)} products")

    _run_with_server(settings, action)


def main():
    """Entry point for `fp` command."""
    cli(obj={})


if __name__ == "__main__":
    main()
