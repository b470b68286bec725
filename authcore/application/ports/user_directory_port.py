from __future__ import annotations

from datetime import datetime
from typing import Protocol

from authcore.domain.entities.user import User, UserRole


class UserDirectoryPort(Protocol):
    def register(self, *, email: str, password: str, display_name: str) -> User:
        ...

    def verify_credentials(self, *, email: str, password: str) -> User | None:
        ...

    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def get_user_by_external_subject(self, *, external_subject: str) -> User | None:
        ...

    def create_external_user(
        self,
        *,
        email: str,
        display_name: str,
        avatar_url: str | None,
        external_subject: str,
        role: UserRole,
        email_verified: bool,
    ) -> User:
        ...

    def link_external_subject(
        self,
        *,
        user_id: str,
        external_subject: str,
        avatar_url: str | None,
    ) -> User:
        ...

    def update_last_login(self, *, user_id: str, at: datetime) -> None:
        ...
