"""
Route binder contract.

A resource module attaches its handlers to the shared router given the live
connection handle. Modules satisfy the protocol by exposing a module-level
`bind_routes` function.
"""

from __future__ import annotations

from typing import Protocol

from fastapi import APIRouter

from .db import Database


class RouteBinder(Protocol):
    def bind_routes(self, router: APIRouter, connection: Database) -> None: ...
