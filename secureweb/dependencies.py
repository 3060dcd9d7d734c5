# secureweb/dependencies.py

"""
Dependency injection utilities for FastAPI endpoints in SecureWeb.

These helpers are used with FastAPI's `Depends()` to hand each request the
long-lived collaborators stored on `app.state` at startup:

- the record store (users, orders, bearer tokens)
- the session store
- the base directory for file access

Tests swap any of them through `app.dependency_overrides`.
"""

from pathlib import Path

from fastapi import Request

from secureweb.config import settings
from secureweb.sessions import SessionStore
from secureweb.store import InMemoryStore


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_files_dir() -> Path:
    """
    FastAPI dependency returning the absolute base directory served by
    `/read` and `/files`.
    """
    return settings.files_dir
