from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from authcore.application.dto.auth import AccessTokenClaims
from authcore.application.use_cases.auth_orchestrator import AuthOrchestrator
from authcore.domain.exceptions import InvalidAccessTokenError
from authcore.infrastructure.cache.failed_login_counter import RedisFailedLoginCounter
from authcore.infrastructure.clients.google_oidc_client import GoogleOidcClient
from authcore.infrastructure.db.engine import get_engine
from authcore.infrastructure.db.repositories.refresh_token_repository import (
    SqlRefreshTokenRepository,
)
from authcore.infrastructure.db.repositories.user_directory_repository import SqlUserDirectory
from authcore.infrastructure.security.password_hasher import PasswordHasher
from authcore.infrastructure.security.token_service import JwtTokenService, load_signing_key
from authcore.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


@lru_cache(maxsize=1)
def get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.jwt_issuer or not settings.jwt_audience:
        raise HTTPException(status_code=500, detail="JWT_ISSUER and JWT_AUDIENCE are required.")
    private_key = load_signing_key(
        private_key_pem=settings.jwt_private_key_pem or None,
        allow_ephemeral=settings.is_development,
    )
    return JwtTokenService(
        private_key=private_key,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        access_ttl_minutes=settings.jwt_access_ttl_minutes,
        refresh_ttl_days=settings.refresh_token_ttl_days,
        key_id=settings.jwt_key_id or None,
    )


@lru_cache(maxsize=1)
def _get_user_directory() -> SqlUserDirectory:
    return SqlUserDirectory(_get_db_engine(), password_hasher=PasswordHasher())


@lru_cache(maxsize=1)
def _get_failed_login_counter() -> RedisFailedLoginCounter:
    return RedisFailedLoginCounter.from_url(get_settings().redis_url)


@lru_cache(maxsize=1)
def get_auth_orchestrator() -> AuthOrchestrator:
    settings = get_settings()
    return AuthOrchestrator(
        user_directory=_get_user_directory(),
        failed_login_counter=_get_failed_login_counter(),
        token_port=get_token_service(),
        refresh_token_port=SqlRefreshTokenRepository(_get_db_engine()),
        max_failed_attempts=settings.login_max_failed_attempts,
        lockout_seconds=settings.login_lockout_seconds,
    )


@lru_cache(maxsize=1)
def get_google_oauth_client() -> GoogleOidcClient:
    settings = get_settings()
    if not settings.google_client_id:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID is required.")
    return GoogleOidcClient(client_id=settings.google_client_id)


def require_access_token(authorization: str = Header(default="")) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid token.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Invalid token.")
    return token


def get_current_claims(
    token: str = Depends(require_access_token),
    token_service: JwtTokenService = Depends(get_token_service),
) -> AccessTokenClaims:
    try:
        return token_service.decode_access_token(token=token)
    except InvalidAccessTokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
