"""
Website queries (raw SQL).

There is no websites table: a website is the set of audits sharing a url.
"""

from __future__ import annotations

from lighthouse_audit_service.core.db import Database


async def list_website_urls(db: Database, *, limit: int, offset: int) -> list[str]:
    rows = await db.fetch_all(
        """
        SELECT url, max(time_created) AS last_audited
        FROM lighthouse_audits
        GROUP BY url
        ORDER BY last_audited DESC, url
        LIMIT $1 OFFSET $2
        """,
        limit,
        offset,
    )
    return [str(row["url"]) for row in rows]


async def count_websites(db: Database) -> int:
    return int(await db.fetch_value("SELECT count(DISTINCT url) FROM lighthouse_audits"))


async def list_audits_for_urls(db: Database, urls: list[str]) -> list[dict]:
    if not urls:
        return []
    return await db.fetch_all(
        """
        SELECT id, url, time_created, time_completed,
               (report_json IS NOT NULL) AS has_report
        FROM lighthouse_audits
        WHERE url = ANY($1::text[])
        ORDER BY time_created DESC, id
        """,
        urls,
    )
