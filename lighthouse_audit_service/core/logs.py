"""
Process logging setup for the CLI entrypoint.
"""

from __future__ import annotations

import logging

LOGGER_NAME = "lighthouse_audit_service"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def default_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def configure_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return default_logger()
