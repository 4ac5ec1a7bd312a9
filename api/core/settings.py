"""
Process settings read from environment variables.

Settings are read once at startup (see `api/main.py`) and handed to the
components that need them; nothing else in the API reads `os.environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_required(name: str) -> str:
    value = _env_str(name)
    if not value:
        raise RuntimeError(f"{name} is not set.")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only params such as sslmode
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def allowed_origins_from_env() -> tuple[str, ...]:
    """
    CORS origins from FRONTEND_URLS (comma-separated), or the local dev defaults.
    """
    raw = _env_str("FRONTEND_URLS")
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or DEFAULT_ALLOWED_ORIGINS


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    min_size: int = 1
    max_size: int = 5
    command_timeout: float = 30.0


@dataclass(frozen=True)
class BlobSettings:
    container: str
    base_url: str
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    region: str = "auto"


@dataclass(frozen=True)
class Settings:
    database: DatabaseSettings
    blob: BlobSettings
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    log_level: str = "INFO"


def database_settings_from_env() -> DatabaseSettings:
    min_size = max(1, _env_int("DB_POOL_MIN_SIZE", 1))
    max_size = max(min_size, _env_int("DB_POOL_MAX_SIZE", 5))
    return DatabaseSettings(
        url=_sanitize_database_url(_env_required("DATABASE_URL")),
        min_size=min_size,
        max_size=max_size,
        command_timeout=_env_float("DB_COMMAND_TIMEOUT", 30.0),
    )


def blob_settings_from_env() -> BlobSettings:
    return BlobSettings(
        container=_env_required("BLOB_CONTAINER"),
        base_url=_env_required("BLOB_BASE_URL").rstrip("/"),
        endpoint_url=_env_str("BLOB_ENDPOINT_URL") or None,
        access_key_id=_env_str("BLOB_ACCESS_KEY_ID") or None,
        secret_access_key=_env_str("BLOB_SECRET_ACCESS_KEY") or None,
        region=_env_str("BLOB_REGION") or "auto",
    )


def settings_from_env() -> Settings:
    max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload_bytes <= 0:
        max_upload_bytes = DEFAULT_MAX_UPLOAD_BYTES

    return Settings(
        database=database_settings_from_env(),
        blob=blob_settings_from_env(),
        max_upload_bytes=max_upload_bytes,
        log_level=(_env_str("LOG_LEVEL") or "INFO").upper(),
    )
