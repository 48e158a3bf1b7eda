"""
Audit persistence (raw SQL).

`report_json` is a jsonb column; asyncpg hands it over as text, so it is
encoded/decoded here and callers only ever see dicts.
"""

from __future__ import annotations

import json
from typing import Any
from uuid import UUID

from lighthouse_audit_service.core.db import Database

_AUDIT_COLUMNS = """
    id, url, time_created, time_completed,
    (report_json IS NOT NULL) AS has_report
"""


async def list_audits(db: Database, *, limit: int, offset: int) -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_AUDIT_COLUMNS}
        FROM lighthouse_audits
        ORDER BY time_created DESC, id
        LIMIT $1 OFFSET $2
        """,
        limit,
        offset,
    )


async def count_audits(db: Database) -> int:
    return int(await db.fetch_value("SELECT count(*) FROM lighthouse_audits"))


async def get_audit(db: Database, audit_id: UUID) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_AUDIT_COLUMNS}
        FROM lighthouse_audits
        WHERE id = $1
        """,
        audit_id,
    )


async def get_audit_report(db: Database, audit_id: UUID) -> dict[str, Any] | None:
    raw = await db.fetch_value(
        """
        SELECT report_json
        FROM lighthouse_audits
        WHERE id = $1
        """,
        audit_id,
    )
    if raw is None:
        return None
    return json.loads(raw) if isinstance(raw, str) else raw


async def insert_audit(db: Database, *, audit_id: UUID, url: str) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO lighthouse_audits (id, url)
        VALUES ($1, $2)
        RETURNING {_AUDIT_COLUMNS}
        """,
        audit_id,
        url,
    )
    if row is None:
        raise RuntimeError("Failed to insert audit.")
    return row


async def complete_audit(db: Database, audit_id: UUID, *, report: dict[str, Any]) -> dict | None:
    return await db.fetch_one(
        f"""
        UPDATE lighthouse_audits
        SET report_json = $2::jsonb,
            time_completed = now()
        WHERE id = $1
        RETURNING {_AUDIT_COLUMNS}
        """,
        audit_id,
        json.dumps(report),
    )


async def fail_audit(db: Database, audit_id: UUID) -> dict | None:
    return await db.fetch_one(
        f"""
        UPDATE lighthouse_audits
        SET report_json = NULL,
            time_completed = now()
        WHERE id = $1
          AND time_completed IS NULL
        RETURNING {_AUDIT_COLUMNS}
        """,
        audit_id,
    )


async def delete_audit(db: Database, audit_id: UUID) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM lighthouse_audits
        WHERE id = $1
        RETURNING id
        """,
        audit_id,
    )
    return row is not None
