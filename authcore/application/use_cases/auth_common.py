from __future__ import annotations

from datetime import datetime, timezone

from authcore.application.dto.auth import TokenPair
from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.application.ports.token_port import TokenPort


UNKNOWN_ORIGIN = "unknown"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_origin_key(origin_key: str | None) -> str:
    key = (origin_key or "").strip()
    return key or UNKNOWN_ORIGIN


def issue_token_pair(
    *,
    user_id: str,
    email: str,
    role: str,
    token_port: TokenPort,
    refresh_token_port: RefreshTokenPort,
) -> TokenPair:
    now = utcnow()
    access = token_port.generate_access_token(user_id=user_id, email=email, role=role)
    raw_refresh = token_port.generate_refresh_token()
    refresh_hash = token_port.hash_token(token=raw_refresh)
    refresh_expires_at = token_port.refresh_token_expires_at(now=now)
    refresh_token_port.store(
        user_id=user_id,
        token_hash=refresh_hash,
        expires_at=refresh_expires_at,
    )
    return TokenPair(
        access_token=access.token,
        refresh_token=raw_refresh,
        access_expires_at=access.expires_at,
        refresh_expires_at=refresh_expires_at,
        user_id=user_id,
    )
