"""
Shared fixtures.

Only test_postgres.py needs PostgreSQL. Elsewhere the readiness gate and
migration runner are patched out of the app module, and resource tests patch
their repository functions.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI

from lighthouse_audit_service import app as app_module
from lighthouse_audit_service.core.db import Database
from lighthouse_audit_service.core.settings import PostgresConfig, ServiceOptions


class FakeDatabase(Database):
    """A handle that never opens a pool and counts closes."""

    def __init__(self) -> None:
        super().__init__(PostgresConfig())
        self.close_calls = 0
        self.ping_calls = 0

    async def ping(self) -> None:
        self.ping_calls += 1

    async def close(self) -> None:
        self.close_calls += 1
        await super().close()


class StartupRecorder:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.gate_error: BaseException | None = None
        self.migration_error: BaseException | None = None

    async def await_connection(self, db: Database, **kwargs) -> None:
        self.calls.append("await_connection")
        if self.gate_error is not None:
            raise self.gate_error

    async def run_migrations(self, db: Database) -> str | None:
        self.calls.append("run_migrations")
        if self.migration_error is not None:
            raise self.migration_error
        return None


@pytest.fixture
def startup(monkeypatch: pytest.MonkeyPatch) -> StartupRecorder:
    recorder = StartupRecorder()
    monkeypatch.setattr(app_module, "await_connection", recorder.await_connection)
    monkeypatch.setattr(app_module, "run_migrations", recorder.run_migrations)
    return recorder


@pytest.fixture
def connection() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("lighthouse_audit_service.tests")


@pytest.fixture
async def app(startup: StartupRecorder, connection: FakeDatabase, logger: logging.Logger) -> FastAPI:
    return await app_module.get_app(ServiceOptions(), connection, logger=logger)


def make_client(app: FastAPI) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with make_client(app) as c:
        yield c
