"""
Readiness gate: block startup until PostgreSQL answers.
"""

from __future__ import annotations

import asyncio
import logging

import asyncpg

from .db import Database
from .errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

# Errors that mean "not reachable yet" rather than "misconfigured for good".
RETRYABLE_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
    asyncpg.InterfaceError,
    asyncpg.PostgresConnectionError,
)


async def await_connection(
    db: Database,
    *,
    attempts: int = 10,
    interval_s: float = 1.0,
) -> None:
    """
    Ping `db` until it answers or `attempts` run out.

    Raises DatabaseConnectionError chained from the last failure.
    """
    last_error: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            await db.ping()
        except RETRYABLE_ERRORS as exc:
            last_error = exc
            logger.debug("db_not_ready attempt=%s/%s error=%r", attempt, attempts, exc)
            if attempt < attempts:
                await asyncio.sleep(interval_s)
            continue
        except asyncpg.PostgresError as exc:
            # Bad credentials or unknown database; retrying will not help.
            raise DatabaseConnectionError(f"Database rejected the connection: {exc}") from exc
        logger.debug("db_ready attempt=%s", attempt)
        return None

    raise DatabaseConnectionError(
        f"Database not reachable after {attempts} attempt(s): {last_error}"
    ) from last_error
