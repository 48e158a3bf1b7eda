"""
Cross-cutting middleware.

Order, outermost first:
1. CORS (only when enabled)
2. GZip
3. body parsing (done by FastAPI/pydantic per route)
4. request logging
5. error translation (innermost, so every error response passes through
   the layers above)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import ErrorTranslatorMiddleware
from .settings import ServiceOptions

GZIP_MINIMUM_SIZE = 500


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers") or []:
        if key.lower() == name:
            return value.decode("latin-1")
    return "-"


def combined_log_line(scope: Scope, status: int, size: int, when: datetime) -> str:
    """
    Apache combined log format, one request per line.
    """
    client = scope.get("client")
    remote = client[0] if client else "-"
    path = scope.get("raw_path") or scope.get("path", "").encode()
    if isinstance(path, bytes):
        path = path.decode("latin-1")
    path = path.split("?", 1)[0]
    query = scope.get("query_string") or b""
    if query:
        path = f"{path}?{query.decode('latin-1')}"
    request_line = f"{scope.get('method', '-')} {path} HTTP/{scope.get('http_version', '1.1')}"
    timestamp = when.strftime("%d/%b/%Y:%H:%M:%S %z")
    referer = _header(scope, b"referer")
    agent = _header(scope, b"user-agent")
    return (
        f'{remote} - - [{timestamp}] "{request_line}" {status} '
        f'{size if size else "-"} "{referer}" "{agent}"'
    )


class RequestLogMiddleware:
    """
    Log one line per HTTP request once the response has been sent.
    """

    def __init__(self, app: ASGIApp, logger: logging.Logger) -> None:
        self.app = app
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = datetime.now(timezone.utc)
        status = 500
        size = 0

        async def send_wrapper(message: Message) -> None:
            nonlocal status, size
            if message["type"] == "http.response.start":
                status = int(message["status"])
            elif message["type"] == "http.response.body":
                size += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self.logger.info(combined_log_line(scope, status, size, started))


def configure_middleware(app: FastAPI, options: ServiceOptions, logger: logging.Logger) -> None:
    # add_middleware wraps the current stack, so the last one added runs first.
    app.add_middleware(ErrorTranslatorMiddleware, logger=logger)
    app.add_middleware(RequestLogMiddleware, logger=logger)
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)
    if options.cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
