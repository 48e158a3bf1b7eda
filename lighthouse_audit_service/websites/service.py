"""
Website business logic: group audits by url.
"""

from __future__ import annotations

from lighthouse_audit_service.audits import service as audit_service
from lighthouse_audit_service.core.db import Database
from lighthouse_audit_service.core.errors import NotFoundError

from . import repository


def group_websites(urls: list[str], audit_rows: list[dict]) -> list[dict]:
    """
    Build `{url, audits}` items in the order of `urls`; audits keep row order.
    """
    by_url: dict[str, list[dict]] = {url: [] for url in urls}
    for row in audit_rows:
        audits = by_url.get(str(row["url"]))
        if audits is not None:
            audits.append(audit_service.to_audit(row))
    return [{"url": url, "audits": audits} for url, audits in by_url.items()]


async def list_websites(db: Database, *, limit: int, offset: int) -> dict:
    urls = await repository.list_website_urls(db, limit=limit, offset=offset)
    rows = await repository.list_audits_for_urls(db, urls)
    total = await repository.count_websites(db)
    return {
        "items": group_websites(urls, rows),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


async def get_website(db: Database, url: str) -> dict:
    rows = await repository.list_audits_for_urls(db, [url])
    if not rows:
        raise NotFoundError(f"website not found for url {url}")
    return group_websites([url], rows)[0]
