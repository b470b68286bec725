from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


UserRole = Literal["Member", "Owner", "Admin"]

ROLE_MEMBER: UserRole = "Member"
ROLE_OWNER: UserRole = "Owner"
ROLE_ADMIN: UserRole = "Admin"
USER_ROLES: tuple[UserRole, ...] = (ROLE_MEMBER, ROLE_OWNER, ROLE_ADMIN)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    password_hash: str | None
    display_name: str
    avatar_url: str | None
    role: UserRole
    email_verified: bool
    external_subject: str | None
    created_at: datetime
    last_login: datetime | None

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)


@dataclass(frozen=True)
class RefreshToken:
    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    revoked_at: datetime | None
    created_at: datetime

    def is_valid(self, *, now: datetime) -> bool:
        return self.revoked_at is None and self.expires_at > now
