from __future__ import annotations

from datetime import datetime
from typing import Protocol

from authcore.application.dto.auth import AccessToken, AccessTokenClaims


class TokenPort(Protocol):
    def generate_access_token(self, *, user_id: str, email: str, role: str) -> AccessToken:
        ...

    def decode_access_token(self, *, token: str) -> AccessTokenClaims:
        ...

    def generate_refresh_token(self) -> str:
        ...

    def hash_token(self, *, token: str) -> str:
        ...

    def refresh_token_expires_at(self, *, now: datetime) -> datetime:
        ...
