from __future__ import annotations

from typing import Any, Mapping

from authcore.domain.entities.user import ROLE_MEMBER, USER_ROLES, User


def _as_str(value: Any) -> str:
    return str(value)


def _as_role(value: Any):
    role = str(value) if value is not None else ROLE_MEMBER
    return role if role in USER_ROLES else ROLE_MEMBER


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        email=row["email"],
        password_hash=row.get("password_hash"),
        display_name=row["display_name"],
        avatar_url=row.get("avatar_url"),
        role=_as_role(row.get("role")),
        email_verified=bool(row["email_verified"]),
        external_subject=row.get("external_subject"),
        created_at=row["created_at"],
        last_login=row.get("last_login"),
    )
