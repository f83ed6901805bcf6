"""
Logging Middleware - request timing and ticket correlation
"""
import re
import time
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

QUIET_PATHS = {"/api/health", "/api/health/dependencies"}
TICKET_PATH_PATTERN = re.compile(r'^/api/tickets/(\d+)')


def ticket_id_from_path(path: str) -> Optional[str]:
    match = TICKET_PATH_PATTERN.match(path)
    return match.group(1) if match else None


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each API call with its duration and, for ticket routes, the ticket ID

    Every response gets an ``X-Process-Time`` header (milliseconds).
    """

    async def dispatch(self, request: Request, call_next: Callable):
        path = request.url.path
        quiet = path in QUIET_PATHS
        method = request.method
        ticket_id = ticket_id_from_path(path)
        label = f"{method} {path}" + (f" [ticket {ticket_id}]" if ticket_id else "")

        start = time.perf_counter()
        if not quiet:
            logger.info(f"→ {label}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.error(f"✗ {label} ERROR ({duration_ms}ms): {e}", exc_info=True)
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Process-Time"] = str(duration_ms)

        if not quiet:
            log = logger.warning if response.status_code >= 400 else logger.info
            log(f"← {label} {response.status_code} ({duration_ms}ms)")

        return response
