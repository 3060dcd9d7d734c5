# secureweb/middleware_fetch_metadata.py

"""
Fetch Metadata resource isolation.

Browsers attach `Sec-Fetch-Site` to every request. Anything not on the
allow-list (by default `same-origin` and `same-site`) is rejected with 400
before it reaches a route. Requests without the header, such as those from
non-browser clients, pass through.
"""

import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp


class FetchMetadataMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, allowed_sites: Iterable[str] = ("same-origin", "same-site")):
        super().__init__(app)
        self.allowed_sites = frozenset(s.lower() for s in allowed_sites)

    async def dispatch(self, request: Request, call_next):
        site = request.headers.get("sec-fetch-site")
        if site and site.lower() not in self.allowed_sites:
            logging.getLogger("secureweb").warning(
                "blocked by fetch metadata policy",
                extra={"method": request.method, "sec_fetch_site": site},
            )
            return PlainTextResponse("Blocked by Fetch Metadata policy", status_code=400)
        return await call_next(request)
