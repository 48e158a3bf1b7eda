"""
Audit business logic.

An audit is created RUNNING by whoever schedules a Lighthouse run. The runner
later either stores the report (COMPLETED) or reports a failure (FAILED).
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit
from uuid import UUID, uuid4

from lighthouse_audit_service.core.db import Database
from lighthouse_audit_service.core.errors import ConflictError, InvalidRequestError, NotFoundError

from . import repository
from .schemas import AuditStatus


def parse_audit_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise InvalidRequestError(f"{raw} is not a valid audit id.") from exc


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidRequestError(f"{url or '<empty>'} is not a valid http(s) url.")
    return url


def audit_status(row: dict) -> AuditStatus:
    if row["time_completed"] is None:
        return AuditStatus.RUNNING
    if row["has_report"]:
        return AuditStatus.COMPLETED
    return AuditStatus.FAILED


def to_audit(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "url": str(row["url"]),
        "status": audit_status(row).value,
        "time_created": row["time_created"],
        "time_completed": row["time_completed"],
    }


async def list_audits(db: Database, *, limit: int, offset: int) -> dict:
    rows = await repository.list_audits(db, limit=limit, offset=offset)
    total = await repository.count_audits(db)
    return {
        "items": [to_audit(row) for row in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


async def get_audit(db: Database, audit_id: UUID) -> dict:
    row = await repository.get_audit(db, audit_id)
    if row is None:
        raise NotFoundError(f"audit not found for id {audit_id}")
    return to_audit(row)


async def create_audit(db: Database, url: str) -> dict:
    row = await repository.insert_audit(db, audit_id=uuid4(), url=normalize_url(url))
    return to_audit(row)


async def get_report(db: Database, audit_id: UUID) -> dict[str, Any]:
    audit = await get_audit(db, audit_id)
    if audit["status"] != AuditStatus.COMPLETED.value:
        raise ConflictError(f"audit {audit_id} has no report (status {audit['status']})")
    report = await repository.get_audit_report(db, audit_id)
    if report is None:
        raise ConflictError(f"audit {audit_id} has no report")
    return report


async def store_report(db: Database, audit_id: UUID, report: dict[str, Any]) -> dict:
    if not report:
        raise InvalidRequestError("report must be a non-empty JSON object.")
    row = await repository.complete_audit(db, audit_id, report=report)
    if row is None:
        raise NotFoundError(f"audit not found for id {audit_id}")
    return to_audit(row)


async def mark_failed(db: Database, audit_id: UUID) -> dict:
    row = await repository.fail_audit(db, audit_id)
    if row is not None:
        return to_audit(row)
    # Either missing or already finished; tell the caller which.
    audit = await get_audit(db, audit_id)
    raise ConflictError(f"audit {audit_id} is already {audit['status']}")


async def delete_audit(db: Database, audit_id: UUID) -> None:
    deleted = await repository.delete_audit(db, audit_id)
    if not deleted:
        raise NotFoundError(f"audit not found for id {audit_id}")
