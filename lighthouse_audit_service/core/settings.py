"""
Service options.

Options are immutable once built. `ServiceOptions.from_env()` is what the
CLI uses; tests and embedders construct the models directly.

Recognized environment variables:
- LAS_PORT, LAS_HOST, LAS_CORS, LAS_LOG_LEVEL
- DATABASE_URL (wins over the PG* variables)
- PGHOST, PGPORT, PGUSER, PGPASSWORD, PGDATABASE
"""

from __future__ import annotations

import os
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 3003

_TRUTHY = {"1", "true", "yes", "on"}


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only parameters such as sslmode.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _env_str(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(name, "").strip()
    return raw or None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


class PostgresConfig(BaseModel):
    """
    Connection parameters handed through to `asyncpg.create_pool`.
    """

    model_config = ConfigDict(frozen=True)

    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    min_size: int = Field(default=1, ge=0)
    max_size: int = Field(default=5, ge=1)
    command_timeout: float = Field(default=30, gt=0)

    def pool_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "min_size": self.min_size,
            "max_size": self.max_size,
            "command_timeout": self.command_timeout,
        }
        if self.dsn:
            kwargs["dsn"] = _sanitize_database_url(self.dsn)
        for key in ("host", "port", "user", "password", "database"):
            value = getattr(self, key)
            if value is not None:
                kwargs[key] = value
        return kwargs

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PostgresConfig:
        env = os.environ if env is None else env
        port = _env_str(env, "PGPORT")
        return cls(
            dsn=_env_str(env, "DATABASE_URL"),
            host=_env_str(env, "PGHOST"),
            port=int(port) if port and port.isdigit() else None,
            user=_env_str(env, "PGUSER"),
            password=_env_str(env, "PGPASSWORD"),
            database=_env_str(env, "PGDATABASE"),
        )


class ServiceOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    host: str = "0.0.0.0"
    cors: bool = False
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    # Readiness gate policy.
    connect_attempts: int = Field(default=10, ge=1)
    connect_interval_s: float = Field(default=1.0, ge=0.0)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ServiceOptions:
        env = os.environ if env is None else env
        return cls(
            port=_env_int(env, "LAS_PORT", DEFAULT_PORT),
            host=_env_str(env, "LAS_HOST") or "0.0.0.0",
            cors=_env_bool(env, "LAS_CORS"),
            postgres=PostgresConfig.from_env(env),
        )


def log_level_from_env(env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    return (_env_str(env, "LAS_LOG_LEVEL") or "INFO").upper()
