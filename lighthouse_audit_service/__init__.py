"""
Lighthouse audit service: stores Lighthouse audit results in PostgreSQL and
serves them over HTTP.
"""

from lighthouse_audit_service.app import get_app
from lighthouse_audit_service.core.db import Database
from lighthouse_audit_service.core.settings import PostgresConfig, ServiceOptions
from lighthouse_audit_service.server import ListeningServer, start_server

__version__ = "0.1.0"

__all__ = [
    "Database",
    "ListeningServer",
    "PostgresConfig",
    "ServiceOptions",
    "get_app",
    "start_server",
]
