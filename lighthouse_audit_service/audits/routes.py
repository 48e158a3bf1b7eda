"""
Audit API endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query, Response, status

from lighthouse_audit_service.core.db import Database
from lighthouse_audit_service.websites import service as website_service

from . import schemas, service


def bind_routes(router: APIRouter, connection: Database) -> None:
    @router.get("/v1/audits")
    async def list_audits(
        limit: int = Query(25, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ) -> dict:
        return await service.list_audits(connection, limit=limit, offset=offset)

    @router.post("/v1/audits", status_code=status.HTTP_201_CREATED)
    async def create_audit(request: schemas.CreateAuditRequest) -> dict:
        return await service.create_audit(connection, request.url)

    @router.get("/v1/audits/{audit_id}")
    async def get_audit(audit_id: str) -> dict:
        return await service.get_audit(connection, service.parse_audit_id(audit_id))

    @router.get("/v1/audits/{audit_id}/report")
    async def get_audit_report(audit_id: str) -> dict:
        return await service.get_report(connection, service.parse_audit_id(audit_id))

    @router.put("/v1/audits/{audit_id}/report")
    async def put_audit_report(
        audit_id: str,
        report: dict[str, Any] = Body(...),
    ) -> dict:
        return await service.store_report(connection, service.parse_audit_id(audit_id), report)

    @router.post("/v1/audits/{audit_id}/failure")
    async def fail_audit(audit_id: str) -> dict:
        return await service.mark_failed(connection, service.parse_audit_id(audit_id))

    @router.get("/v1/audits/{audit_id}/website")
    async def get_audit_website(audit_id: str) -> dict:
        audit = await service.get_audit(connection, service.parse_audit_id(audit_id))
        return await website_service.get_website(connection, audit["url"])

    @router.delete("/v1/audits/{audit_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_audit(audit_id: str) -> Response:
        await service.delete_audit(connection, service.parse_audit_id(audit_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
