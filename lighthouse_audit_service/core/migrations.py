"""
Schema migrations (alembic).

Revisions live in the `lighthouse_audit_service.migrations` package. The
service upgrades to head on every start: the upgrade runs on a short-lived
SQLAlchemy async engine (asyncpg dialect) inside one transaction that first
takes an advisory lock, so concurrent starts serialize and a failing revision
leaves the schema untouched. Upgrading an up-to-date schema is a no-op.
"""

from __future__ import annotations

import logging
import sys
from importlib.resources import files
from typing import TextIO

import asyncpg
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.util import CommandError
from sqlalchemy import text
from sqlalchemy.engine import URL, Connection, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from .db import Database
from .errors import MigrationError
from .settings import PostgresConfig

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "lighthouse_audit_service.migrations"
DRIVER_NAME = "postgresql+asyncpg"

ALEMBIC_URL_KEY = "sqlalchemy.url"
ALEMBIC_SCRIPT_LOCATION_KEY = "script_location"

# Arbitrary, stable key for pg_advisory_xact_lock.
ADVISORY_LOCK_KEY = 3003_2020


def sqlalchemy_url(config: PostgresConfig) -> URL:
    """
    The same target as `config.pool_kwargs()`, as an asyncpg SQLAlchemy URL.
    """
    kwargs = config.pool_kwargs()
    if "dsn" in kwargs:
        return make_url(kwargs["dsn"]).set(drivername=DRIVER_NAME)
    return URL.create(
        DRIVER_NAME,
        username=config.user,
        password=config.password,
        host=config.host,
        port=config.port,
        database=config.database,
    )


def build_alembic_config(db_url: str | None = None, stdout: TextIO = sys.stdout) -> Config:
    cfg = Config(stdout=stdout, output_buffer=stdout)
    if db_url is not None:
        cfg.set_main_option(ALEMBIC_URL_KEY, db_url)
    cfg.set_main_option(ALEMBIC_SCRIPT_LOCATION_KEY, str(files(MIGRATIONS_PACKAGE)))
    return cfg


def head_revision(cfg: Config | None = None) -> str | None:
    return ScriptDirectory.from_config(cfg or build_alembic_config()).get_current_head()


def _upgrade(connection: Connection, cfg: Config) -> tuple[str | None, str | None]:
    before = MigrationContext.configure(connection).get_current_revision()
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")
    after = MigrationContext.configure(connection).get_current_revision()
    return before, after


async def run_migrations(db: Database) -> str | None:
    """
    Upgrade the schema behind `db` to head and return the head revision.
    """
    cfg = build_alembic_config()
    engine = create_async_engine(sqlalchemy_url(db.config), poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": ADVISORY_LOCK_KEY})
            before, after = await conn.run_sync(_upgrade, cfg)
    except (SQLAlchemyError, CommandError, asyncpg.PostgresError, OSError) as exc:
        raise MigrationError(f"Schema migration failed: {exc}") from exc
    finally:
        await engine.dispose()

    if before == after:
        logger.debug("migrations_up_to_date revision=%s", after)
    else:
        logger.info("migrations_applied from=%s to=%s", before, after)
    return after
