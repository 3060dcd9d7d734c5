# secureweb/main.py

"""
Main entry point for the SecureWeb hardening service.

This file defines:
- The middleware stack (correlation IDs, security headers, logging, CORS,
  body size limits, Fetch Metadata isolation, Prometheus metrics, rate limiting)
- Safe file access (`/read`, `/files/...`) through the path guard
- An orders API protected against IDOR by the authorization check
- A cookie-session login flow backed by bcrypt
- A CSP violation report sink

Run with `uvicorn secureweb.main:app --no-server-header` behind a TLS proxy.
"""

import os
import time
import logging
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, Request, Response, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from secureweb.config import settings
from secureweb.logging_config import configure_logging
from secureweb.middlewares import LoggingMiddleware
from secureweb.middleware_security import SecurityHeadersMiddleware
from secureweb.middleware_body_limit import BodySizeLimitMiddleware
from secureweb.middleware_fetch_metadata import FetchMetadataMiddleware
from secureweb.security import get_current_principal, get_session_user
from secureweb.dependencies import get_files_dir, get_sessions, get_store
from secureweb.exceptions import (
    Forbidden, NotFound, ServiceError, TraversalError, TraversalErrorKind,
)
from secureweb.authorization import authorize, visible_to
from secureweb.passwords import dummy_hash, verify_password
from secureweb.path_guard import resolve_safe
from secureweb.schemas import LoginRequest, Order, OrderList, ReadRequest, User
from secureweb.sessions import SessionStore
from secureweb.store import InMemoryStore, build_demo_store

# ─── Request Correlation ───────────────────────────────────────────────────────
from asgi_correlation_id import CorrelationIdMiddleware

# ─── Rate Limiting ─────────────────────────────────────────────────────────────
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

# ─── Metrics / Prometheus ──────────────────────────────────────────────────────
from prometheus_client import (
    Counter, Histogram, CollectorRegistry,
    generate_latest, CONTENT_TYPE_LATEST, multiprocess
)

# ───────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics: track request volume and latency per method + route
# ───────────────────────────────────────────────────────────────────────────────
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "http_status"]
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"]
)

# ───────────────────────────────────────────────────────────────────────────────
# Application Startup
# ───────────────────────────────────────────────────────────────────────────────
configure_logging(settings.log_level)
logger = logging.getLogger("secureweb")

app = FastAPI(
    title="SecureWeb",
    version="0.1.0",
    description="Hardened file access, IDOR-safe orders and session login."
)

app.state.store = build_demo_store(settings)
app.state.sessions = SessionStore(ttl_seconds=settings.session_ttl_seconds)
dummy_hash(settings.bcrypt_rounds)  # warm the unknown-user hash before the first login

# ───────────────────────────────────────────────────────────────────────────────
# Global Exception Handling
# ───────────────────────────────────────────────────────────────────────────────
@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError):
    """
    Return structured, non-revealing JSON errors for known failures.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """
    Replace FastAPI's default 422, whose body repeats the submitted values,
    with a generic 400. Only the error types are logged.
    """
    logger.warning(
        "request validation failed",
        extra={
            "route": getattr(request.scope.get("route"), "path", None),
            "errors": [error["type"] for error in exc.errors()],
        },
    )
    return JSONResponse(status_code=400, content={"error": "invalid request"})


TRAVERSAL_RESPONSES = {
    TraversalErrorKind.MISSING_INPUT: (400, "filename is required"),
    TraversalErrorKind.INVALID_ENCODING: (400, "invalid filename"),
    TraversalErrorKind.OUTSIDE_BASE: (403, "access denied"),
}


def traversal_response(request: Request, exc: TraversalError) -> JSONResponse:
    """Map a path guard rejection to a generic response; the raw reference is never echoed."""
    status_code, message = TRAVERSAL_RESPONSES[exc.kind]
    logger.warning(
        "file reference rejected",
        extra={"reason": exc.kind.value, "route": getattr(request.scope.get("route"), "path", None)},
    )
    return JSONResponse(status_code=status_code, content={"error": message})

# ───────────────────────────────────────────────────────────────────────────────
# Rate Limiting
# ───────────────────────────────────────────────────────────────────────────────
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# ───────────────────────────────────────────────────────────────────────────────
# Prometheus Middleware
# ───────────────────────────────────────────────────────────────────────────────
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start

    # Label by route template so /files/<anything> stays one series
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "<unmatched>")

    REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        http_status=str(response.status_code),
    ).inc()

    return response

# ───────────────────────────────────────────────────────────────────────────────
# Middleware Stack (last added runs first)
# ───────────────────────────────────────────────────────────────────────────────
app.add_middleware(FetchMetadataMiddleware, allowed_sites=settings.fetch_metadata_allowed_sites)
app.add_middleware(BodySizeLimitMiddleware, max_content_length=settings.max_body_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    SecurityHeadersMiddleware,
    hsts_max_age=settings.hsts_max_age,
    csp_report_uri=settings.csp_report_uri,
)
app.add_middleware(CorrelationIdMiddleware)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """
    Prometheus endpoint for scraping runtime stats.
    Supports both single- and multi-process environments.
    """
    mp_dir = os.getenv("PROMETHEUS_MULTIPROC_DIR")
    if mp_dir and os.path.isdir(mp_dir):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        data = generate_latest(registry)
    else:
        data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)

# ───────────────────────────────────────────────────────────────────────────────
# Health Probe
# ───────────────────────────────────────────────────────────────────────────────
@app.get("/healthz", tags=["health"])
async def healthz():
    """
    Kubernetes-style liveness probe: basic internal health check.
    """
    return {"status": "ok"}

# ───────────────────────────────────────────────────────────────────────────────
# Safe File Access
# ───────────────────────────────────────────────────────────────────────────────
@app.post("/read", tags=["files"])
async def read_file(
    request: Request,
    body: ReadRequest,
    base_dir: Path = Depends(get_files_dir),
):
    """
    Read a UTF-8 text file from the files directory.

    The guard (including its symlink check) and the read both run in the
    threadpool so filesystem calls never block the event loop.
    """
    try:
        safe_path = await run_in_threadpool(
            resolve_safe, base_dir, body.filename, verify_symlinks=settings.verify_symlinks
        )
    except TraversalError as exc:
        return traversal_response(request, exc)

    if not await run_in_threadpool(safe_path.is_file):
        return JSONResponse(status_code=404, content={"error": "File not found"})

    try:
        content = await run_in_threadpool(safe_path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.exception("file read failed")
        return JSONResponse(status_code=500, content={"error": "Failed to read file"})

    return {"path": safe_path.relative_to(base_dir).as_posix(), "content": content}


def raw_file_reference(request: Request, file_path: str) -> str:
    """
    Recover the still-encoded reference after `/files/`.

    The ASGI server has already percent-decoded `file_path`; handing that to
    the guard would decode a second time. The raw path is used instead, and
    when a server does not provide one the decoded value is re-encoded.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        raw = raw_path.split(b"?", 1)[0].decode("latin-1")
        _, sep, reference = raw.partition("/files/")
        if sep:
            return reference
    return quote(file_path, safe="/")


@app.get("/files/{file_path:path}", tags=["files"])
async def serve_file(
    request: Request,
    file_path: str,
    base_dir: Path = Depends(get_files_dir),
):
    """
    Serve a file from the files directory through the path guard.
    """
    try:
        safe_path = await run_in_threadpool(
            resolve_safe,
            base_dir,
            raw_file_reference(request, file_path),
            verify_symlinks=settings.verify_symlinks,
        )
    except TraversalError as exc:
        return traversal_response(request, exc)

    if not await run_in_threadpool(safe_path.is_file):
        return JSONResponse(status_code=404, content={"error": "File not found"})

    return FileResponse(safe_path)

# ───────────────────────────────────────────────────────────────────────────────
# CSP Report Sink
# ───────────────────────────────────────────────────────────────────────────────
@app.post("/csp-report", status_code=204, include_in_schema=False)
async def csp_report(request: Request):
    """
    Accepts `application/csp-report` (or JSON) violation reports and logs them.
    """
    try:
        report = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid report"})

    logger.warning("csp violation", extra={"csp_report": report})
    return Response(status_code=204)

# ───────────────────────────────────────────────────────────────────────────────
# Orders (IDOR-safe)
# ───────────────────────────────────────────────────────────────────────────────
@app.get("/orders", response_model=OrderList, tags=["orders"])
async def list_orders(
    user: User = Depends(get_current_principal),
    store: InMemoryStore = Depends(get_store),
):
    """
    List the orders the caller is allowed to see.
    """
    return OrderList(current_user=user.name, orders=visible_to(user, store.list_orders()))


@app.get("/orders/{order_id}", response_model=Order, tags=["orders"])
async def get_order(
    order_id: int,
    user: User = Depends(get_current_principal),
    store: InMemoryStore = Depends(get_store),
):
    """
    Fetch one order, enforcing ownership (customers) or department scope (support).
    """
    order = store.get_order(order_id)
    if order is None:
        raise NotFound("Order not found")

    decision = authorize(user, order)
    if not decision.allowed:
        logger.warning(
            "order access denied",
            extra={"user_id": user.id, "order_id": order_id, "reason": decision.reason.value},
        )
        raise Forbidden()

    return order

# ───────────────────────────────────────────────────────────────────────────────
# Session Login
# ───────────────────────────────────────────────────────────────────────────────
def invalid_credentials() -> JSONResponse:
    # One response for every failure so usernames cannot be enumerated
    return JSONResponse(
        status_code=401,
        content={"success": False, "message": "Invalid credentials"}
    )


async def read_credentials(request: Request) -> LoginRequest | None:
    """
    Parse a login body sent either as an HTML form or as JSON.

    Returns None for anything that does not carry a string username and
    password, so the caller can answer it like a wrong password.
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/x-www-form-urlencoded"):
            data = dict(await request.form())
        else:
            data = await request.json()
        return LoginRequest.model_validate(data)
    except (ValidationError, ValueError):
        return None


@app.post("/api/login", tags=["auth"])
@limiter.limit(settings.rate_limit_login)
async def login(
    request: Request,
    store: InMemoryStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
):
    """
    Exchange a username and password for a session cookie.

    Accepts `application/x-www-form-urlencoded` or JSON `{username, password}`.
    """
    body = await read_credentials(request)
    if body is None:
        return invalid_credentials()

    user = store.find_user_by_username(body.username)
    if user is None or user.password_hash is None:
        # Same bcrypt cost as a real check
        await run_in_threadpool(verify_password, body.password, dummy_hash(settings.bcrypt_rounds))
        return invalid_credentials()

    if not await run_in_threadpool(verify_password, body.password, user.password_hash):
        return invalid_credentials()

    token = sessions.create(user.id)
    response = JSONResponse({"success": True})
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
    logger.info("login succeeded", extra={"user_id": user.id})
    return response


@app.get("/api/me", tags=["auth"])
async def me(user: User | None = Depends(get_session_user)):
    if user is None:
        return JSONResponse(status_code=401, content={"authenticated": False})
    return {"authenticated": True, "username": user.username}


@app.post("/api/logout", tags=["auth"])
async def logout(request: Request, sessions: SessionStore = Depends(get_sessions)):
    sessions.revoke(request.cookies.get(settings.session_cookie_name))
    response = JSONResponse({"success": True})
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )
    return response
