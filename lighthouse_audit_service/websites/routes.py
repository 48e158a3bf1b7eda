"""
Website API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from lighthouse_audit_service.core.db import Database

from . import service


def bind_routes(router: APIRouter, connection: Database) -> None:
    @router.get("/v1/websites")
    async def list_websites(
        limit: int = Query(25, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ) -> dict:
        return await service.list_websites(connection, limit=limit, offset=offset)

    @router.get("/v1/websites/{website_url:path}")
    async def get_website(website_url: str) -> dict:
        return await service.get_website(connection, website_url)
