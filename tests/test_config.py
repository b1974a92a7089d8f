"""
Tests for ConfigLoader layering and Settings validation.
"""

import pytest

from fastpurchase.config import ConfigError, ConfigLoader, Settings


def load(environ=None, env_file=None, overrides=None):
    return ConfigLoader.load(env_file=env_file, environ=environ or {}, overrides=overrides)


class TestConfigLoader:

    def test_defaults(self):
        loader = load()
        assert loader.get("database.url") == "sqlite:///fastpurchase.sqlite3"
        assert loader.get("auth.jwt_expires_in") == "24h"
        assert loader.get("server.port") == 3000
        assert loader.get("missing.key", "fallback") == "fallback"

    def test_prefixed_env_nests(self):
        loader = load({
            "FP_RATE_LIMIT__WINDOW": "60",
            "FP_RATE_LIMIT__ENABLED": "false",
            "FP_AUTH__ARGON2__TIME_COST": "3",
            "FP_DEBUG": "yes",
            "UNRELATED": "x",
        })
        assert loader.get("rate_limit.window") == 60
        assert loader.get("rate_limit.enabled") is False
        assert loader.get("auth.argon2.time_cost") == 3
        assert loader.get("debug") is True
        assert loader.get("unrelated") is None

    def test_legacy_names(self):
        loader = load({
            "DATABASE_URL": "sqlite:///legacy.db",
            "JWT_SECRET": "s3cret",
            "JWT_EXPIRES_IN": "12h",
            "PORT": "8080",
        })
        assert loader.get("database.url") == "sqlite:///legacy.db"
        assert loader.get("auth.jwt_secret") == "s3cret"
        assert loader.get("auth.jwt_expires_in") == "12h"
        assert loader.get("server.port") == 8080

    def test_prefixed_wins_over_legacy(self):
        loader = load({"PORT": "8080", "FP_SERVER__PORT": "9090"})
        assert loader.get("server.port") == 9090

    def test_env_file_below_environment(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("JWT_SECRET=from-file\nFP_CACHE__TTL=30\n")

        loader = load({"FP_CACHE__TTL": "45"}, env_file=str(env_file))

        assert loader.get("auth.jwt_secret") == "from-file"
        assert loader.get("cache.ttl") == 45

    def test_missing_env_file_is_skipped(self, tmp_path):
        loader = load(env_file=str(tmp_path / "absent.env"))
        assert loader.get("cache.ttl") == 300

    def test_overrides_win(self):
        loader = load({"FP_CACHE__TTL": "45"}, overrides={"cache": {"ttl": 5}})
        assert loader.get("cache.ttl") == 5
        assert loader.get("cache.max_size") == 10000

    def test_json_values(self):
        loader = load({"FP_SERVER__TAGS": '["a", "b"]'})
        assert loader.get("server.tags") == ["a", "b"]


class TestSettings:

    def test_from_environment(self):
        settings = Settings.load(env_file=None, environ={"JWT_SECRET": "s3cret", "JWT_EXPIRES_IN": "30m"})
        assert settings.jwt_secret == "s3cret"
        assert settings.jwt_ttl == 1800
        assert settings.rate_limit_enabled is True
        assert settings.rate_limit_trust_proxy is False
        assert settings.log_format == "dev"
        assert settings.port == 3000

    def test_trust_proxy_from_environment(self):
        settings = Settings.load(
            env_file=None, environ={"JWT_SECRET": "s3cret", "FP_RATE_LIMIT__TRUST_PROXY": "true"}
        )
        assert settings.rate_limit_trust_proxy is True

    def test_secret_required(self):
        with pytest.raises(ConfigError, match="jwt_secret"):
            Settings.load(env_file=None, environ={})

    def test_debug_generates_secret(self):
        settings = Settings.load(env_file=None, environ={"FP_DEBUG": "true"})
        assert settings.debug is True
        assert len(settings.jwt_secret) > 20

    @pytest.mark.parametrize("environ", [
        {"JWT_EXPIRES_IN": "soon"},
        {"FP_LOGGING__FORMAT": "xml"},
        {"FP_LOGGING__LEVEL": "LOUD"},
        {"PORT": "70000"},
        {"FP_CACHE__TTL": "-1"},
        {"FP_RATE_LIMIT__ENABLED": "maybe"},
        {"DATABASE_URL": "fastpurchase.db"},
    ])
    def test_invalid(self, environ):
        with pytest.raises(ConfigError):
            Settings.load(env_file=None, environ={"JWT_SECRET": "s3cret", **environ})

    def test_immutable(self):
        settings = Settings.load(env_file=None, environ={"JWT_SECRET": "s3cret"})
        with pytest.raises(AttributeError):
            settings.port = 1
