"""Application configuration utilities.

This module centralizes environment configuration for the auth client and the
reference identity service: where the identity service lives, how the session
is persisted on the client, how cached sessions are revalidated at startup,
and the token settings used by the reference service.

Environment variables:
- IDENTITY_BASE_URL: Base URL of the identity service (default http://localhost:3000/api)
- IDENTITY_TIMEOUT_SECONDS: Per-request timeout; empty or 'none' disables it
- STORAGE_BACKEND: 'sqlite' (default) or 'memory'
- STORAGE_PATH: SQLite file used for persisted client storage
- STARTUP_REVALIDATION: 'optimistic' (default), 'background' or 'blocking'
- JWT_SECRET / JWT_ALGORITHM: Token signing for the reference service
- ACCESS_TOKEN_EXPIRE_MINUTES / REFRESH_TOKEN_EXPIRE_MINUTES: Token TTLs
- CORS_ORIGINS: Comma separated origins allowed by the reference service
- LOG_LEVEL: Logging level name (default INFO)
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional
from pydantic import BaseModel, Field

StorageBackend = Literal["memory", "sqlite"]
RevalidationMode = Literal["optimistic", "background", "blocking"]

_STORAGE_BACKENDS = {"memory", "sqlite"}
_REVALIDATION_MODES = {"optimistic", "background", "blocking"}


class Settings(BaseModel):
    """Configuration settings loaded from environment with safe defaults."""
    identity_base_url: str = Field(
        default="http://localhost:3000/api", description="Identity service base URL."
    )
    identity_timeout_seconds: Optional[float] = Field(
        default=10.0, description="Identity request timeout; None waits indefinitely."
    )
    storage_backend: StorageBackend = Field(
        default="sqlite", description="Persisted client storage backend."
    )
    storage_path: str = Field(
        default=str(Path.home() / ".versenest" / "client_storage.db"),
        description="SQLite file for persisted client storage.",
    )
    startup_revalidation: RevalidationMode = Field(
        default="optimistic",
        description="How a rehydrated session token is checked at startup.",
    )
    jwt_secret: str = Field(
        default="dev-secret-change-me", description="JWT secret key (dev default)."
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm.")
    access_token_expire_minutes: int = Field(
        default=60, description="Access token TTL in minutes."
    )
    refresh_token_expire_minutes: int = Field(
        default=60 * 24 * 14, description="Refresh token TTL in minutes."
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Allowed CORS origins.",
    )
    log_level: str = Field(default="INFO", description="Logging level name.")


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return 10.0
    raw = raw.strip().lower()
    if raw in {"", "none", "0"}:
        return None
    try:
        return float(raw)
    except ValueError:
        return 10.0  # unparseable, keep the default


def load_settings() -> Settings:
    """Load settings from environment with robust defaults and validation.

    Returns:
        Settings: Validated settings object.

    Raises:
        ValidationError: If environment values are invalid.
    """
    storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").strip().lower()
    if storage_backend not in _STORAGE_BACKENDS:
        storage_backend = "sqlite"  # safe default favoring persistence

    revalidation = os.getenv("STARTUP_REVALIDATION", "optimistic").strip().lower()
    if revalidation not in _REVALIDATION_MODES:
        revalidation = "optimistic"

    cors_origins_raw = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    cors_origins = [o.strip() for o in cors_origins_raw.split(",") if o.strip()]

    storage_path = os.getenv("STORAGE_PATH") or str(Path.home() / ".versenest" / "client_storage.db")

    return Settings(
        identity_base_url=os.getenv("IDENTITY_BASE_URL", "http://localhost:3000/api").rstrip("/"),
        identity_timeout_seconds=_parse_timeout(os.getenv("IDENTITY_TIMEOUT_SECONDS")),
        storage_backend=storage_backend,  # type: ignore[arg-type]
        storage_path=storage_path,
        startup_revalidation=revalidation,  # type: ignore[arg-type]
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret-change-me"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        refresh_token_expire_minutes=int(os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 14))),
        cors_origins=cors_origins,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


# Singleton-style accessor
_settings: Optional[Settings] = None

# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Get cached application settings."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings

# PUBLIC_INTERFACE
def reset_settings_cache() -> None:
    """Reset the cached settings.

    Intended for tests so that changes to environment variables (e.g.
    STORAGE_BACKEND, STARTUP_REVALIDATION) take effect on the next call to
    get_settings().
    """
    global _settings
    _settings = None
