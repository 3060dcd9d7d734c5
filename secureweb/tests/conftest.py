import os

import pytest

# Settings are read once at import time; keep bcrypt cheap for the test run
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from secureweb.config import settings  # noqa: E402
from secureweb.dependencies import get_files_dir  # noqa: E402
from secureweb.main import app, limiter  # noqa: E402
from secureweb.sessions import SessionStore  # noqa: E402


@pytest.fixture
def files_dir(tmp_path):
    """
    A populated base directory plus a sibling that shares its name prefix:

        tmp/files/report.txt
        tmp/files/robots.txt
        tmp/files/sub/notes.txt
        tmp/files-secret/secret.txt
    """
    base = tmp_path / "files"
    (base / "sub").mkdir(parents=True)
    (base / "report.txt").write_text("quarterly numbers", encoding="utf-8")
    (base / "robots.txt").write_text("User-agent: *\nDisallow:\n", encoding="utf-8")
    (base / "sub" / "notes.txt").write_text("nested", encoding="utf-8")

    secret = tmp_path / "files-secret"
    secret.mkdir()
    (secret / "secret.txt").write_text("top secret", encoding="utf-8")
    return base


@pytest.fixture
def client(files_dir):
    app.dependency_overrides[get_files_dir] = lambda: files_dir
    app.state.sessions = SessionStore(ttl_seconds=settings.session_ttl_seconds)
    limiter.reset()
    # https so the Secure session cookie is stored and sent back
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
