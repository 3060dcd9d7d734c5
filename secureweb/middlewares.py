# secureweb/middlewares.py

"""
Request logging with correlation IDs.

`LoggingMiddleware` writes one JSON line per request under the "secureweb"
logger: method, route, status code, duration (ms), client address and a
request ID (from the correlation ID, or a fallback UUID).

The matched route template (e.g. `/files/{file_path:path}`) is logged instead
of the raw URL, so attacker-supplied traversal strings and query strings never
reach log storage verbatim.
"""

import time
import uuid
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from asgi_correlation_id import correlation_id

logger = logging.getLogger("secureweb")


def _route_of(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "<unmatched>")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and its outcome, including failures that escape the
    route as unhandled exceptions.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = correlation_id.get() or str(uuid.uuid4())

        def fields(status: int) -> dict:
            return {
                "method": request.method,
                "route": _route_of(request),
                "status": status,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "client": request.client.host if request.client else None,
                "request_id": request_id,
            }

        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception("unhandled exception", extra=fields(500))
            raise

        level = logging.WARNING if response.status_code in (401, 403, 429) else logging.INFO
        logger.log(level, "request completed", extra=fields(response.status_code))
        return response
