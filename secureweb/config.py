# secureweb/config.py

"""
Configuration module for the SecureWeb hardening service.

This module defines the application's runtime configuration using Pydantic's `BaseSettings` class,
allowing environment variable management, validation, and default values.

Environment variables are loaded from a `.env` file or system environment.
All settings in this file are validated and can be type-checked at runtime.

This config powers:
- The base directory served by the safe file resolver
- Session lifetime and cookie flags
- Rate limits
- Response header policy (HSTS, CSP reporting, Fetch Metadata)
- CORS policies

🔐 Override `DEMO_PASSWORD` in any shared deployment.
"""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import ConfigDict, SecretStr, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ─── Safe File Access ──────────────────────────────────────────────────────
    files_dir: Path = Path("files")  # Base directory; resolved to an absolute path
    verify_symlinks: bool = True     # Also check the symlink-resolved path

    # ─── Sessions ──────────────────────────────────────────────────────────────
    session_ttl_seconds: int = 30 * 60
    session_cookie_name: str = "session"
    cookie_secure: bool = True  # Requires HTTPS; disable only for local dev
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # ─── Credentials ───────────────────────────────────────────────────────────
    bcrypt_rounds: int = 12
    demo_username: str = "student"
    demo_password: SecretStr = SecretStr("password123")

    # ─── Rate Limiting Policies ────────────────────────────────────────────────
    # Format must be "<count>/<unit>", e.g. "5/15minute"
    rate_limit_default: str = "100/15minute"  # Applied to every route
    rate_limit_login: str = "5/15minute"      # Login brute-force protection

    # ─── Header Policy ─────────────────────────────────────────────────────────
    fetch_metadata_allowed_sites: List[str] = ["same-origin", "same-site"]
    hsts_max_age: int = 31536000
    csp_report_uri: Optional[str] = "/csp-report"

    # ─── Request Limits / CORS ─────────────────────────────────────────────────
    max_body_bytes: int = 1_048_576
    cors_origins: List[str] = []

    log_level: str = "INFO"

    # ─── Pydantic Global Configuration ─────────────────────────────────────────
    model_config = ConfigDict(
        env_file=".env",                     # Load settings from .env file
        env_file_encoding="utf-8",
        extra="ignore",                      # Ignore unrelated env vars
    )

    # ─── Validators ────────────────────────────────────────────────────────────
    @field_validator("rate_limit_default", "rate_limit_login")
    @classmethod
    def check_rate_limit_format(cls, v: str) -> str:
        """
        Validates rate limit string format: must include a "/" (e.g., "5/15minute").
        This avoids malformed rate-limit strings that would break SlowAPI.
        """
        if "/" not in v:
            raise ValueError("rate limits must be of form `<num>/<unit>`, e.g. `5/15minute`")
        return v

    @field_validator("files_dir")
    @classmethod
    def absolute_files_dir(cls, v: Path) -> Path:
        """
        The path guard compares against a fixed absolute base, so relative
        values are anchored to the working directory once, at load time.
        """
        return Path(v).expanduser().absolute()

    @field_validator("bcrypt_rounds")
    @classmethod
    def check_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v


# Instantiate a singleton config object, importable throughout the app
settings = Settings()
