"""
Error taxonomy and the terminal error translator.

Startup errors (`DatabaseConnectionError`, `MigrationError`, `ListenError`)
abort the bootstrap and reach the caller of `get_app` / `start_server`.
Request errors are turned into a plain-text response here and never escape
the request they were raised in.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class ServiceError(Exception):
    pass


class DatabaseConnectionError(ServiceError):
    pass


class MigrationError(ServiceError):
    pass


class ListenError(ServiceError):
    pass


class StatusCodeError(ServiceError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class InvalidRequestError(StatusCodeError):
    def __init__(self, message: str) -> None:
        super().__init__(400, message)


class NotFoundError(StatusCodeError):
    def __init__(self, message: str) -> None:
        super().__init__(404, message)


class ConflictError(StatusCodeError):
    def __init__(self, message: str) -> None:
        super().__init__(409, message)


def _status_of(exc: Exception) -> int:
    if isinstance(exc, RequestValidationError):
        return 400
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return 500


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid request"


def _message_of(exc: Exception) -> str:
    if isinstance(exc, RequestValidationError):
        return _validation_message(exc)
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    return str(exc)


def error_response(exc: Exception) -> PlainTextResponse:
    """
    Translate any error into `status_code` (or 500) with the message as body.
    """
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return PlainTextResponse(_message_of(exc), status_code=_status_of(exc), headers=headers)


def configure_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """
    Install the translator. Must run after every router is mounted.
    """

    async def _handle_error(_: Request, exc: Exception) -> PlainTextResponse:
        response = error_response(exc)
        if response.status_code >= 500:
            logger.error("request_failed status=%s error=%r", response.status_code, exc)
        return response

    app.add_exception_handler(StarletteHTTPException, _handle_error)
    app.add_exception_handler(StatusCodeError, _handle_error)
    app.add_exception_handler(RequestValidationError, _handle_error)
    # Only reached by errors raised in the outer middleware themselves;
    # handler errors are answered by ErrorTranslatorMiddleware.
    app.add_exception_handler(Exception, _handle_error)


class ErrorTranslatorMiddleware:
    """
    Innermost layer: turn any error the handlers did not claim into a response.

    Sitting inside CORS and GZip means 500s get the same headers as every
    other response, and the error never reaches uvicorn.
    """

    def __init__(self, app: ASGIApp, logger: logging.Logger) -> None:
        self.app = app
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = error_response(exc)
            self.logger.error("request_failed status=%s error=%r", response.status_code, exc)
            await response(scope, receive, send)
