from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    postgres_dsn: str
    redis_url: str
    jwt_issuer: str
    jwt_audience: str
    jwt_private_key_pem: str
    jwt_key_id: str
    jwt_access_ttl_minutes: int
    refresh_token_ttl_days: int
    login_max_failed_attempts: int
    login_lockout_seconds: int
    google_client_id: str
    cookie_secure: bool
    db_create_schema: bool
    app_host: str
    app_port: int

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in {"development", "dev", "local"}


def get_settings() -> Settings:
    return Settings(
        app_env=_env("APP_ENV", "production"),
        log_level=_env("LOG_LEVEL", "INFO"),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        redis_url=_env("REDIS_URL", "redis://localhost:6379/0"),
        jwt_issuer=_env("JWT_ISSUER", ""),
        jwt_audience=_env("JWT_AUDIENCE", ""),
        jwt_private_key_pem=(_env("JWT_PRIVATE_KEY_PEM", "") or "").replace("\\n", "\n"),
        jwt_key_id=_env("JWT_KEY_ID", ""),
        jwt_access_ttl_minutes=int(_env("JWT_ACCESS_TTL_MINUTES", "15")),
        refresh_token_ttl_days=int(_env("REFRESH_TOKEN_TTL_DAYS", "7")),
        login_max_failed_attempts=int(_env("LOGIN_MAX_FAILED_ATTEMPTS", "5")),
        login_lockout_seconds=int(_env("LOGIN_LOCKOUT_SECONDS", "900")),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        cookie_secure=_bool("COOKIE_SECURE", True),
        db_create_schema=_bool("DB_CREATE_SCHEMA", False),
        app_host=_env("APP_HOST", "0.0.0.0"),
        app_port=int(_env("APP_PORT", "8000")),
    )
