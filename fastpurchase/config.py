"""
Config system - layered configuration with typed settings.

Sources, later overrides earlier:
1. Built-in defaults
2. ``.env`` file (python-dotenv)
3. Process environment
4. Manual overrides

Prefixed keys nest on double underscores (``FP_DATABASE__URL`` ->
``database.url``). The unprefixed names of earlier deployments
(``DATABASE_URL``, ``JWT_SECRET``, ``JWT_EXPIRES_IN``, ``PORT``) are also
read, below the prefixed ones within the same source.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from .auth.tokens import parse_duration

logger = logging.getLogger("fastpurchase.config")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


DEFAULTS: Dict[str, Any] = {
    "debug": False,
    "database": {
        "url": "sqlite:///fastpurchase.sqlite3",
    },
    "auth": {
        "jwt_secret": None,
        "jwt_expires_in": "24h",
        "argon2": {
            "time_cost": 2,
            "memory_cost": 65536,
            "parallelism": 4,
        },
    },
    "cache": {
        "ttl": 300,
        "max_size": 10000,
    },
    "rate_limit": {
        "enabled": True,
        "window": 900,
        "trust_proxy": False,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 3000,
    },
    "logging": {
        "format": "dev",
        "level": "INFO",
    },
}

# Unprefixed variable -> dotted config path
LEGACY_ENV: Dict[str, str] = {
    "DATABASE_URL": "database.url",
    "JWT_SECRET": "auth.jwt_secret",
    "JWT_EXPIRES_IN": "auth.jwt_expires_in",
    "PORT": "server.port",
}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage:
        loader = ConfigLoader.load(env_file=".env")
        loader.get("database.url")
    """

    def __init__(self, env_prefix: str = "FP_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    @classmethod
    def load(
        cls,
        env_prefix: str = "FP_",
        env_file: Optional[str] = ".env",
        overrides: Optional[Dict[str, Any]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file; skipped when missing or None
            overrides: Nested dict applied last
            environ: Environment mapping (defaults to ``os.environ``)
        """
        loader = cls(env_prefix=env_prefix)

        if env_file and Path(env_file).is_file():
            values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            loader._load_mapping(values)
            logger.debug(f"Loaded {len(values)} values from {env_file}")

        loader._load_mapping(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_mapping(self, env: Mapping[str, str]) -> None:
        for name, path in LEGACY_ENV.items():
            if name in env:
                self._set_path(path.split("."), self._parse_value(env[name]))
        for key, value in env.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str) -> None:
        """Convert FP_RATE_LIMIT__WINDOW to ``rate_limit.window``."""
        parts = key[len(self.env_prefix):].lower().split("__")
        self._set_path(parts, self._parse_value(value))

    def _set_path(self, parts: list[str], value: Any) -> None:
        current = self.config_data
        for part in parts[:-1]:
            nxt = current.get(part)
            if not isinstance(nxt, dict):
                nxt = current[part] = {}
            current = nxt
        current[parts[-1]] = value

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: Mapping[str, Any]) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, Mapping):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current: Any = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_dict(self) -> dict:
        return copy.deepcopy(self.config_data)


# ============================================================================
# Typed settings
# ============================================================================

_LOG_FORMATS = ("dev", "combined", "structured")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _as_bool(path: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ConfigError(f"{path} must be a boolean, got {value!r}")


def _as_int(path: str, value: Any, minimum: int = 0, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{path} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{path} must be an integer, got {value!r}") from None
    if number < minimum or (maximum is not None and number > maximum):
        raise ConfigError(f"{path} is out of range: {number}")
    return number


@dataclass(frozen=True)
class Settings:
    """Validated service settings."""

    database_url: str
    jwt_secret: str
    jwt_expires_in: str
    jwt_ttl: int
    argon2_time_cost: int
    argon2_memory_cost: int
    argon2_parallelism: int
    cache_ttl: int
    cache_max_size: int
    rate_limit_enabled: bool
    rate_limit_window: int
    rate_limit_trust_proxy: bool
    host: str
    port: int
    debug: bool
    log_format: str
    log_level: str

    @classmethod
    def from_loader(cls, loader: ConfigLoader) -> "Settings":
        """
        Build settings from a loader.

        Raises:
            ConfigError: On a missing secret (outside debug) or any invalid value
        """
        debug = _as_bool("debug", loader.get("debug", False))

        database_url = loader.get("database.url")
        if not isinstance(database_url, str) or "://" not in database_url:
            raise ConfigError(f"database.url must be a URL, got {database_url!r}")

        jwt_secret = loader.get("auth.jwt_secret")
        if jwt_secret in (None, ""):
            if not debug:
                raise ConfigError("auth.jwt_secret (JWT_SECRET) is required")
            jwt_secret = secrets.token_urlsafe(32)
            logger.warning("No JWT secret configured; generated an ephemeral development secret")
        jwt_secret = str(jwt_secret)

        jwt_expires_in = str(loader.get("auth.jwt_expires_in"))
        try:
            jwt_ttl = parse_duration(jwt_expires_in)
        except ValueError as e:
            raise ConfigError(f"auth.jwt_expires_in: {e}") from None

        log_format = str(loader.get("logging.format")).lower()
        if log_format not in _LOG_FORMATS:
            raise ConfigError(f"logging.format must be one of {_LOG_FORMATS}, got {log_format!r}")
        log_level = str(loader.get("logging.level")).upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigError(f"logging.level must be one of {_LOG_LEVELS}, got {log_level!r}")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            jwt_expires_in=jwt_expires_in,
            jwt_ttl=jwt_ttl,
            argon2_time_cost=_as_int("auth.argon2.time_cost", loader.get("auth.argon2.time_cost"), 1),
            argon2_memory_cost=_as_int("auth.argon2.memory_cost", loader.get("auth.argon2.memory_cost"), 8),
            argon2_parallelism=_as_int("auth.argon2.parallelism", loader.get("auth.argon2.parallelism"), 1),
            cache_ttl=_as_int("cache.ttl", loader.get("cache.ttl")),
            cache_max_size=_as_int("cache.max_size", loader.get("cache.max_size"), 1),
            rate_limit_enabled=_as_bool("rate_limit.enabled", loader.get("rate_limit.enabled")),
            rate_limit_window=_as_int("rate_limit.window", loader.get("rate_limit.window"), 1),
            rate_limit_trust_proxy=_as_bool("rate_limit.trust_proxy", loader.get("rate_limit.trust_proxy")),
            host=str(loader.get("server.host")),
            port=_as_int("server.port", loader.get("server.port"), 1, 65535),
            debug=debug,
            log_format=log_format,
            log_level=log_level,
        )

    @classmethod
    def load(cls, **kwargs: Any) -> "Settings":
        """Shortcut for ``Settings.from_loader(ConfigLoader.load(**kwargs))``."""
        return cls.from_loader(ConfigLoader.load(**kwargs))
