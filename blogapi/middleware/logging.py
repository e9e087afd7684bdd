"""
Blog API — Access Log Middleware
==================================

What:  One access-log line per API call, tagged with the request ID.
When:  Runs inside RequestIDMiddleware so the ID is already set.

Level by outcome:
    5xx                     → ERROR
    400, 405, 409, 429      → WARNING
    401, 403, 404           → INFO (readers hitting drafts, expired tokens)
    slower than SLOW_MS     → WARNING regardless of status
    everything else         → INFO

Never logged: request bodies, Authorization headers, passwords.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from blogapi.middleware.request_id import request_id_var

logger = logging.getLogger("blogapi.access")

ROUTINE_REJECTIONS = {401, 403, 404}
SLOW_MS = 1000.0


def _level_for(status: int, elapsed_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if elapsed_ms > SLOW_MS:
        return logging.WARNING
    if status >= 400 and status not in ROUTINE_REJECTIONS:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    # Probes hit this every few seconds
    QUIET_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.log(
            _level_for(response.status_code, elapsed_ms),
            "[%s] %s %s → %d in %.1fms (client %s)",
            request_id_var.get("-"),
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.client.host if request.client else "unknown",
        )
        return response
