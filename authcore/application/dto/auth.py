from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from authcore.domain.entities.user import User


@dataclass(frozen=True)
class RegisterUserInput:
    email: str
    password: str
    display_name: str


@dataclass(frozen=True)
class LoginLocalInput:
    email: str
    password: str
    origin_key: str


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str


@dataclass(frozen=True)
class LogoutInput:
    refresh_token: str | None


@dataclass(frozen=True)
class OAuthSignInInput:
    subject: str
    email: str
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class AccessTokenClaims:
    user_id: str
    email: str
    role: str
    jti: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    user_id: str
    token_type: str = "Bearer"


@dataclass(frozen=True)
class ExternalUserResult:
    success: bool
    user: User | None = None
    error: str | None = None


@dataclass(frozen=True)
class GoogleIdentityInfo:
    subject: str
    email: str
    email_verified: bool
    name: str | None
    picture: str | None


class AuthErrorKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    FORBIDDEN = "forbidden"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class AuthFailure:
    kind: AuthErrorKind
    message: str
    retry_after_seconds: int | None = None
    field_errors: dict[str, list[str]] = field(default_factory=dict)


AuthResult = Union[TokenPair, AuthFailure]
