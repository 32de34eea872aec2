from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

_DEV_SESSION_SECRET = "development-only-session-secret-change-me-in-production"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - DATABASE_URL: PostgreSQL connection string. When set, the networked backend is used.
    - SQLITE_DB_PATH: path to sqlite db file used when DATABASE_URL is unset. Default './data/doneit.db'
    - DB_POSTGRESDB_SSL_ENABLED: 'true' to connect to PostgreSQL over TLS (default: false)
    - DB_POSTGRESDB_SSL_REJECT_UNAUTHORIZED: 'false' to skip server certificate verification (default: true)
    - DB_POOL_SIZE / DB_MAX_OVERFLOW: PostgreSQL connection pool sizing (default: 5 / 10)
    - SESSION_SECRET: key used to sign the session cookie
    - SESSION_COOKIE_NAME: session cookie name (default: 'done-it-session')
    - SESSION_MAX_AGE: session cookie lifetime in seconds (default: one week)
    - APP_ENV: 'development' (default) or 'production'; production forces secure cookies
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default: INFO)
    """

    database_url: Optional[str]
    sqlite_db_path: str
    db_ssl_enabled: bool
    db_ssl_reject_unauthorized: bool
    db_pool_size: int
    db_max_overflow: int
    session_secret: str
    session_cookie_name: str
    session_max_age: int
    app_env: str
    cors_allow_origins: List[str]
    log_level: str

    @property
    def persistence_backend(self) -> str:
        """'postgres' when a connection string is configured, otherwise 'sqlite'."""
        return "postgres" if self.database_url else "sqlite"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    database_url = os.getenv("DATABASE_URL", "").strip() or None

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()

    app_env = _get_env("APP_ENV", "development").strip().lower()
    if app_env not in {"development", "production"}:
        app_env = "development"

    return Settings(
        database_url=database_url,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/doneit.db").strip(),
        db_ssl_enabled=_parse_bool(_get_env("DB_POSTGRESDB_SSL_ENABLED", "false"), False),
        # Only an explicit 'false' disables certificate verification
        db_ssl_reject_unauthorized=_get_env("DB_POSTGRESDB_SSL_REJECT_UNAUTHORIZED", "true").strip().lower() != "false",
        db_pool_size=_parse_int(_get_env("DB_POOL_SIZE", "5"), 5),
        db_max_overflow=_parse_int(_get_env("DB_MAX_OVERFLOW", "10"), 10),
        session_secret=_get_env("SESSION_SECRET", _DEV_SESSION_SECRET),
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "done-it-session").strip(),
        session_max_age=_parse_int(_get_env("SESSION_MAX_AGE", str(60 * 60 * 24 * 7)), 60 * 60 * 24 * 7),
        app_env=app_env,
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level if log_level in _LOG_LEVELS else "INFO",
    )
