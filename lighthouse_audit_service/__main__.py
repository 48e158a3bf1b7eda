"""
CLI entrypoint: `lighthouse-audit-service` / `python -m lighthouse_audit_service`.
"""

from __future__ import annotations

import asyncio
import sys

from lighthouse_audit_service.core.errors import ServiceError
from lighthouse_audit_service.core.logs import configure_logging
from lighthouse_audit_service.core.settings import ServiceOptions, log_level_from_env
from lighthouse_audit_service.server import start_server


async def _run(options: ServiceOptions) -> None:
    logger = configure_logging(log_level_from_env())
    server = await start_server(options, logger=logger)
    # uvicorn handles SIGINT/SIGTERM and stops serving; release happens there.
    await server.wait_closed()


def main() -> int:
    options = ServiceOptions.from_env()
    try:
        asyncio.run(_run(options))
    except KeyboardInterrupt:
        return 0
    except ServiceError as exc:
        print(f"lighthouse-audit-service: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
