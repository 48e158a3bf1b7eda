"""
Application assembly.

`get_app` runs the startup sequence in order and only returns a fully wired
FastAPI app:

1. provision the connection handle (new pool or injected handle)
2. wait for the database (readiness gate)
3. apply pending migrations
4. middleware, routes, error translator
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, Response

from lighthouse_audit_service.audits import routes as audit_routes
from lighthouse_audit_service.core.db import Database, provision_connection
from lighthouse_audit_service.core.errors import configure_error_handlers
from lighthouse_audit_service.core.logs import default_logger
from lighthouse_audit_service.core.middleware import configure_middleware
from lighthouse_audit_service.core.migrations import run_migrations
from lighthouse_audit_service.core.readiness import await_connection
from lighthouse_audit_service.core.routing import RouteBinder
from lighthouse_audit_service.core.settings import ServiceOptions
from lighthouse_audit_service.websites import routes as website_routes

ROUTE_BINDERS: tuple[RouteBinder, ...] = (audit_routes, website_routes)


def configure_routes(router: APIRouter, connection: Database, logger: logging.Logger) -> None:
    logger.debug("attaching routes...")

    @router.get("/_ping")
    async def ping() -> Response:
        return Response(status_code=200)

    for binder in ROUTE_BINDERS:
        binder.bind_routes(router, connection)


async def get_app(
    options: ServiceOptions | None = None,
    connection: Database | None = None,
    *,
    logger: logging.Logger | None = None,
) -> FastAPI:
    options = options or ServiceOptions()
    logger = logger or default_logger()
    logger.info("building app...")

    conn = provision_connection(options.postgres, connection)
    await await_connection(
        conn,
        attempts=options.connect_attempts,
        interval_s=options.connect_interval_s,
    )
    await run_migrations(conn)

    app = FastAPI(title="lighthouse-audit-service")
    app.state.connection = conn
    configure_middleware(app, options, logger)

    router = APIRouter()
    configure_routes(router, conn, logger)
    app.include_router(router)

    configure_error_handlers(app, logger)
    return app
