# secureweb/middleware_security.py

"""
Security middleware to inject the response header policy.

Every response gets:
- A strict `Content-Security-Policy` (`default-src 'none'`, `form-action` and
  `base-uri` locked to `'none'`)
- A `Permissions-Policy` denying camera, microphone, geolocation and payment
- HSTS, nosniff, frame denial, no-referrer and cross-origin isolation headers
- Cache-control: long-lived public caching for `robots.txt` / `sitemap.xml`,
  `no-store` for everything else

It also strips `X-Powered-By`, `Server`, `ETag` and `Last-Modified`, and skips
CSP and COEP on the Swagger and Redoc docs routes to avoid breaking their UI.
(Uvicorn adds its own `Server` header after the app; run it with
`--no-server-header`.)
"""

from typing import Dict, List, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CSP_DIRECTIVES: Dict[str, List[str]] = {
    "default-src": ["'none'"],
    "script-src": ["'self'"],
    "style-src": ["'self'"],
    "img-src": ["'self'", "data:"],
    "connect-src": ["'self'"],
    "font-src": ["'self'"],
    "object-src": ["'none'"],
    "frame-ancestors": ["'none'"],
    "form-action": ["'none'"],
    "base-uri": ["'none'"],
    "worker-src": ["'self'"],
    "manifest-src": ["'self'"],
    "frame-src": ["'none'"],
}

PERMISSIONS_POLICY: Dict[str, List[str]] = {
    "camera": [],
    "microphone": [],
    "geolocation": [],
    "fullscreen": ["self"],
    "payment": [],
}

PUBLIC_CACHE_SUFFIXES = ("robots.txt", "sitemap.xml")
DOCS_PREFIXES = ("/docs", "/redoc", "/openapi.json")


def build_csp(directives: Mapping[str, List[str]], report_uri: str | None = None) -> str:
    """
    Serialize CSP directives, e.g. `{"default-src": ["'none'"]}` ->
    `"default-src 'none'"`. A `report-uri` directive is appended when given.
    """
    parts = [f"{name} {' '.join(sources)}" for name, sources in directives.items()]
    if report_uri:
        parts.append(f"report-uri {report_uri}")
    return "; ".join(parts)


def build_permissions_policy(features: Mapping[str, List[str]]) -> str:
    """
    Serialize a Permissions-Policy, e.g. `{"camera": []}` -> `"camera=()"`.
    """
    return ", ".join(f"{name}=({' '.join(allow)})" for name, allow in features.items())


def cache_headers(path: str) -> Dict[str, str]:
    if path.endswith(PUBLIC_CACHE_SUFFIXES):
        return {"Cache-Control": "public, max-age=3600, immutable"}
    return {
        "Cache-Control": "no-store, no-cache, must-revalidate, private",
        "Pragma": "no-cache",
        "Expires": "0",
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Injects the header policy into all HTTP responses.

    Example usage:
        app.add_middleware(SecurityHeadersMiddleware, hsts_max_age=31536000)
    """

    def __init__(self, app: ASGIApp, hsts_max_age: int = 31536000, csp_report_uri: str | None = None):
        super().__init__(app)
        self.csp = build_csp(CSP_DIRECTIVES, csp_report_uri)
        self.permissions_policy = build_permissions_policy(PERMISSIONS_POLICY)
        self.static_headers = {
            "Strict-Transport-Security": f"max-age={hsts_max_age}; includeSubDomains; preload",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "no-referrer",
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Resource-Policy": "same-origin",
        }

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        path = request.url.path

        for name in ("X-Powered-By", "Server", "ETag", "Last-Modified"):
            if name in response.headers:
                del response.headers[name]

        response.headers.update(self.static_headers)
        response.headers["Permissions-Policy"] = self.permissions_policy
        response.headers.update(cache_headers(path))

        # Docs UI pulls external assets; leave it without CSP or COEP
        if not path.startswith(DOCS_PREFIXES):
            response.headers["Content-Security-Policy"] = self.csp
            response.headers["Cross-Origin-Embedder-Policy"] = "require-corp"
        return response
