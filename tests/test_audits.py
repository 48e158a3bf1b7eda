"""
Audit routes with the repository patched out.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import httpx
import pytest

from lighthouse_audit_service.audits import repository, service
from lighthouse_audit_service.audits.schemas import AuditStatus

AUDIT_ID = UUID("0b5e2c8e-7f3c-4c1e-9a3a-5d1f0c6a9b11")
CREATED = datetime(2020, 5, 1, 12, 0, tzinfo=timezone.utc)
COMPLETED = datetime(2020, 5, 1, 12, 1, tzinfo=timezone.utc)


def audit_row(*, completed: bool = False, has_report: bool = False, url: str = "https://spotify.com") -> dict:
    return {
        "id": AUDIT_ID,
        "url": url,
        "time_created": CREATED,
        "time_completed": COMPLETED if completed else None,
        "has_report": has_report,
    }


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> dict:
    """In-memory stand-in for the audit repository keyed by id."""
    rows: dict[UUID, dict] = {}
    reports: dict[UUID, dict] = {}

    async def list_audits(db, *, limit, offset):
        ordered = sorted(rows.values(), key=lambda r: r["time_created"], reverse=True)
        return ordered[offset : offset + limit]

    async def count_audits(db):
        return len(rows)

    async def get_audit(db, audit_id):
        return rows.get(audit_id)

    async def get_audit_report(db, audit_id):
        return reports.get(audit_id)

    async def insert_audit(db, *, audit_id, url):
        rows[audit_id] = {**audit_row(url=url), "id": audit_id}
        return rows[audit_id]

    async def complete_audit(db, audit_id, *, report):
        if audit_id not in rows:
            return None
        reports[audit_id] = report
        rows[audit_id] = {**rows[audit_id], "time_completed": COMPLETED, "has_report": True}
        return rows[audit_id]

    async def fail_audit(db, audit_id):
        row = rows.get(audit_id)
        if row is None or row["time_completed"] is not None:
            return None
        rows[audit_id] = {**row, "time_completed": COMPLETED, "has_report": False}
        return rows[audit_id]

    async def delete_audit(db, audit_id):
        return rows.pop(audit_id, None) is not None

    for fn in (
        list_audits,
        count_audits,
        get_audit,
        get_audit_report,
        insert_audit,
        complete_audit,
        fail_audit,
        delete_audit,
    ):
        monkeypatch.setattr(repository, fn.__name__, fn)
    return {"rows": rows, "reports": reports}


def test_audit_status_is_derived_from_completion() -> None:
    assert service.audit_status(audit_row()) is AuditStatus.RUNNING
    assert service.audit_status(audit_row(completed=True, has_report=True)) is AuditStatus.COMPLETED
    assert service.audit_status(audit_row(completed=True)) is AuditStatus.FAILED


async def test_create_then_fetch(client: httpx.AsyncClient, store: dict) -> None:
    created = await client.post("/v1/audits", json={"url": "https://spotify.com"})

    assert created.status_code == 201
    body = created.json()
    assert body["url"] == "https://spotify.com"
    assert body["status"] == "RUNNING"

    fetched = await client.get(f"/v1/audits/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


async def test_create_rejects_non_http_url(client: httpx.AsyncClient, store: dict) -> None:
    resp = await client.post("/v1/audits", json={"url": "ftp://spotify.com"})

    assert resp.status_code == 400
    assert "not a valid http(s) url" in resp.text
    assert store["rows"] == {}


async def test_create_without_url_is_400(client: httpx.AsyncClient, store: dict) -> None:
    resp = await client.post("/v1/audits", json={})

    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "body.url: Field required"
    assert store["rows"] == {}


async def test_out_of_range_limit_is_400(client: httpx.AsyncClient, store: dict) -> None:
    resp = await client.get("/v1/audits", params={"limit": 0})

    assert resp.status_code == 400
    assert resp.text.startswith("query.limit: ")


async def test_list_audits_is_paginated(client: httpx.AsyncClient, store: dict) -> None:
    store["rows"][AUDIT_ID] = audit_row()

    resp = await client.get("/v1/audits", params={"limit": 10, "offset": 0})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["limit"] == 10
    assert [item["id"] for item in body["items"]] == [str(AUDIT_ID)]


async def test_malformed_id_is_400(client: httpx.AsyncClient, store: dict) -> None:
    resp = await client.get("/v1/audits/not-a-uuid")

    assert resp.status_code == 400
    assert resp.text == "not-a-uuid is not a valid audit id."


async def test_missing_audit_is_404(client: httpx.AsyncClient, store: dict) -> None:
    resp = await client.get(f"/v1/audits/{AUDIT_ID}")

    assert resp.status_code == 404
    assert resp.text == f"audit not found for id {AUDIT_ID}"


async def test_report_lifecycle(client: httpx.AsyncClient, store: dict) -> None:
    store["rows"][AUDIT_ID] = audit_row()

    pending = await client.get(f"/v1/audits/{AUDIT_ID}/report")
    assert pending.status_code == 409

    stored = await client.put(f"/v1/audits/{AUDIT_ID}/report", json={"categories": {"seo": {"score": 0.9}}})
    assert stored.status_code == 200
    assert stored.json()["status"] == "COMPLETED"

    report = await client.get(f"/v1/audits/{AUDIT_ID}/report")
    assert report.status_code == 200
    assert report.json() == {"categories": {"seo": {"score": 0.9}}}


async def test_mark_failed_once(client: httpx.AsyncClient, store: dict) -> None:
    store["rows"][AUDIT_ID] = audit_row()

    first = await client.post(f"/v1/audits/{AUDIT_ID}/failure")
    second = await client.post(f"/v1/audits/{AUDIT_ID}/failure")

    assert first.status_code == 200
    assert first.json()["status"] == "FAILED"
    assert second.status_code == 409
    assert second.text == f"audit {AUDIT_ID} is already FAILED"


async def test_delete(client: httpx.AsyncClient, store: dict) -> None:
    store["rows"][AUDIT_ID] = audit_row()

    deleted = await client.delete(f"/v1/audits/{AUDIT_ID}")
    again = await client.delete(f"/v1/audits/{AUDIT_ID}")

    assert deleted.status_code == 204
    assert deleted.content == b""
    assert again.status_code == 404


async def test_audit_website(client: httpx.AsyncClient, store: dict, monkeypatch: pytest.MonkeyPatch) -> None:
    from lighthouse_audit_service.websites import repository as website_repository

    store["rows"][AUDIT_ID] = audit_row(completed=True, has_report=True)

    async def list_audits_for_urls(db, urls):
        return [row for row in store["rows"].values() if row["url"] in urls]

    monkeypatch.setattr(website_repository, "list_audits_for_urls", list_audits_for_urls)

    resp = await client.get(f"/v1/audits/{AUDIT_ID}/website")

    assert resp.status_code == 200
    body = resp.json()
    assert body["url"] == "https://spotify.com"
    assert [a["status"] for a in body["audits"]] == ["COMPLETED"]
