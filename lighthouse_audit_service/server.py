"""
Listener lifecycle.

`start_server` binds the socket itself so that "port already in use" is
reported to the caller as `ListenError` instead of uvicorn exiting the
process. The connection handle is retained for the lifetime of the listener
and released exactly once when it stops, whether through `close()` or a
signal handled by uvicorn. The release runs from uvicorn's own shutdown
step; the `finally` in `_serve` covers stops that never reach it.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Awaitable, Callable

import uvicorn
from fastapi import FastAPI

from lighthouse_audit_service.app import get_app
from lighthouse_audit_service.core.db import Database, provision_connection
from lighthouse_audit_service.core.errors import ListenError
from lighthouse_audit_service.core.logs import default_logger
from lighthouse_audit_service.core.settings import ServiceOptions

STARTUP_POLL_INTERVAL_S = 0.01


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenError(f"Could not listen on {host}:{port}: {exc}") from exc
    sock.set_inheritable(True)
    return sock


class ReleasingServer(uvicorn.Server):
    """
    uvicorn server that runs `on_shutdown` once its own shutdown completes.

    uvicorn re-raises SIGINT/SIGTERM after `serve()` returns, so anything
    scheduled after `serve()` never runs on a signal-driven stop.
    """

    def __init__(self, config: uvicorn.Config, on_shutdown: Callable[[], Awaitable[None]]) -> None:
        super().__init__(config)
        self._on_shutdown = on_shutdown

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        try:
            await super().shutdown(sockets=sockets)
        finally:
            await self._on_shutdown()


class ListeningServer:
    def __init__(
        self,
        app: FastAPI,
        sock: socket.socket,
        connection: Database,
        logger: logging.Logger,
    ) -> None:
        self.app = app
        self.connection = connection
        self._socket = sock
        self._logger = logger
        self._port = int(sock.getsockname()[1])
        self._server = ReleasingServer(
            uvicorn.Config(app, log_config=None, access_log=False),
            on_shutdown=self._release,
        )
        self._task: asyncio.Task[None] | None = None
        self._released = False

    @property
    def port(self) -> int:
        return self._port

    @property
    def started(self) -> bool:
        return self._server.started and not self._released

    async def start(self) -> None:
        self._task = asyncio.create_task(self._serve(), name=f"las-server:{self._port}")
        while not self._server.started:
            if self._task.done():
                try:
                    await self._task
                except OSError as exc:
                    raise ListenError(f"Could not serve on port {self._port}: {exc}") from exc
                raise ListenError(f"Server on port {self._port} stopped during startup.")
            await asyncio.sleep(STARTUP_POLL_INTERVAL_S)

    async def _serve(self) -> None:
        try:
            await self._server.serve(sockets=[self._socket])
        finally:
            self._socket.close()
            await self._release()

    async def _release(self) -> None:
        if self._released:
            return None
        self._released = True
        self._logger.debug("releasing database connection (port %s)", self._port)
        await self.connection.release()

    async def close(self) -> None:
        if self._task is None:
            self._socket.close()
            await self._release()
            return None
        self._server.should_exit = True
        await self._task

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task


async def start_server(
    options: ServiceOptions | None = None,
    connection: Database | None = None,
    *,
    logger: logging.Logger | None = None,
) -> ListeningServer:
    options = options or ServiceOptions()
    logger = logger or default_logger()
    conn = provision_connection(options.postgres, connection).retain()

    try:
        app = await get_app(options, conn, logger=logger)
        logger.debug("starting application server...")
        sock = bind_socket(options.host, options.port)
    except BaseException:
        await conn.release()
        raise

    server = ListeningServer(app, sock, conn, logger)
    await server.start()
    logger.info("listening on port %s", server.port)
    return server
