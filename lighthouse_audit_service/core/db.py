"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns one connection pool. The pool is created lazily on the first
query so that building a handle does no I/O. The handle is shared between
the bootstrap and the route binders, and its lifetime is reference counted:
every listener that depends on it calls `retain()` and later `release()`;
the pool is closed when the last holder releases it.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from .errors import DatabaseConnectionError
from .settings import PostgresConfig


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


class Database:
    def __init__(self, config: PostgresConfig | None = None) -> None:
        self.config = config if config is not None else PostgresConfig()
        self._pool: asyncpg.Pool | None = None
        self._connect_lock = asyncio.Lock()
        self._holders = 0
        self._closed = False

    @property
    def holders(self) -> int:
        return self._holders

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self) -> asyncpg.Pool:
        if self._closed:
            # Released by its last holder; build a new handle instead.
            raise DatabaseConnectionError("Database handle has been closed.")
        async with self._connect_lock:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(**self.config.pool_kwargs())
        return self._pool

    async def ping(self) -> None:
        pool = await self.connect()
        await pool.fetchval("SELECT 1")

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        pool = await self.connect()
        row = await pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        pool = await self.connect()
        rows = await pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def fetch_value(self, sql: str, *args: Any) -> Any:
        pool = await self.connect()
        return await pool.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). Returns the status tag.
        """
        pool = await self.connect()
        return await pool.execute(sql, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    def retain(self) -> Database:
        self._holders += 1
        return self

    async def release(self) -> None:
        if self._holders <= 0:
            return None
        self._holders -= 1
        if self._holders == 0:
            await self.close()

    async def close(self) -> None:
        self._closed = True
        pool, self._pool = self._pool, None
        if pool is None:
            return None
        await pool.close()


def provision_connection(
    config: PostgresConfig | None = None,
    provided: Database | None = None,
) -> Database:
    """
    Reuse an injected handle as-is, or build a new pooled one from `config`.
    """
    if provided is not None:
        return provided
    return Database(config)
