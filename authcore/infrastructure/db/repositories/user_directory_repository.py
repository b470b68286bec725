from __future__ import annotations

import logging
from datetime import datetime
from functools import cached_property
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authcore.application.ports.password_hasher_port import PasswordHasherPort
from authcore.application.ports.user_directory_port import UserDirectoryPort
from authcore.domain.entities.user import ROLE_MEMBER, User, UserRole
from authcore.domain.exceptions import EmailAlreadyExistsError, UserDirectoryError
from authcore.infrastructure.db.mappers.accounts_mapper import map_row_to_user


logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, email, password_hash, display_name, avatar_url, role,
    email_verified, external_subject, created_at, last_login
"""


class SqlUserDirectory(UserDirectoryPort):
    def __init__(self, engine, *, password_hasher: PasswordHasherPort):
        self._engine = engine
        self._password_hasher = password_hasher

    @cached_property
    def _timing_hash(self) -> str:
        return self._password_hasher.hash(uuid4().hex)

    def register(self, *, email: str, password: str, display_name: str) -> User:
        email = email.strip().lower()
        if self.get_user_by_email(email=email) is not None:
            raise EmailAlreadyExistsError("Email already in use.")

        password_hash = self._password_hasher.hash(password)
        sql = f"""
            INSERT INTO public.users (
                id, email, password_hash, display_name, avatar_url, role,
                email_verified, external_subject, created_at, last_login
            ) VALUES (
                :id, :email, :password_hash, :display_name, NULL, :role,
                false, NULL, now(), NULL
            )
            RETURNING {USER_COLUMNS}
        """
        params = {
            "id": str(uuid4()),
            "email": email,
            "password_hash": password_hash,
            "display_name": display_name,
            "role": ROLE_MEMBER,
        }
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except IntegrityError as exc:
            logger.warning("Registration rejected for %s: email already exists", email)
            raise EmailAlreadyExistsError("Email already in use.") from exc
        except SQLAlchemyError as exc:
            raise UserDirectoryError("Failed to create user.") from exc
        return map_row_to_user(row)

    def verify_credentials(self, *, email: str, password: str) -> User | None:
        user = self.get_user_by_email(email=email)
        if user is None or not user.password_hash:
            # Burn the same hashing cost so response time does not reveal the email.
            self._password_hasher.verify(password, self._timing_hash)
            return None

        verified, replacement_hash = self._password_hasher.verify_and_update(
            password, user.password_hash
        )
        if not verified:
            return None
        if replacement_hash:
            self._update_password_hash(user_id=user.id, password_hash=replacement_hash)
        return user

    def get_user_by_id(self, *, user_id: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
            LIMIT 1
        """
        return self._fetch_one(sql, {"user_id": user_id})

    def get_user_by_email(self, *, email: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE lower(email) = :email
            LIMIT 1
        """
        return self._fetch_one(sql, {"email": email.strip().lower()})

    def get_user_by_external_subject(self, *, external_subject: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE external_subject = :external_subject
            LIMIT 1
        """
        return self._fetch_one(sql, {"external_subject": external_subject})

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
        sql = f"""
            INSERT INTO public.users (
                id, email, password_hash, display_name, avatar_url, role,
                email_verified, external_subject, created_at, last_login
            ) VALUES (
                :id, :email, NULL, :display_name, :avatar_url, :role,
                :email_verified, :external_subject, now(), NULL
            )
            RETURNING {USER_COLUMNS}
        """
        params = {
            "id": str(uuid4()),
            "email": email.strip().lower(),
            "display_name": display_name,
            "avatar_url": avatar_url,
            "role": role,
            "email_verified": email_verified,
            "external_subject": external_subject,
        }
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().one()
        except SQLAlchemyError as exc:
            raise UserDirectoryError("Failed to create user from external identity.") from exc
        return map_row_to_user(row)

    def link_external_subject(
        self,
        *,
        user_id: str,
        external_subject: str,
        avatar_url: str | None,
    ) -> User:
        sql = f"""
            UPDATE public.users
            SET external_subject = :external_subject,
                avatar_url = COALESCE(avatar_url, :avatar_url)
            WHERE id = :user_id
            RETURNING {USER_COLUMNS}
        """
        params = {
            "user_id": user_id,
            "external_subject": external_subject,
            "avatar_url": avatar_url,
        }
        try:
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).mappings().first()
        except SQLAlchemyError as exc:
            raise UserDirectoryError("Failed to link external identity.") from exc
        if row is None:
            raise UserDirectoryError("User to link was not found.")
        return map_row_to_user(row)

    def update_last_login(self, *, user_id: str, at: datetime) -> None:
        sql = """
            UPDATE public.users
            SET last_login = :last_login
            WHERE id = :user_id
        """
        try:
            with self._engine.begin() as conn:
                conn.execute(text(sql), {"user_id": user_id, "last_login": at})
        except SQLAlchemyError as exc:
            raise UserDirectoryError("Failed to update last login.") from exc

    def _update_password_hash(self, *, user_id: str, password_hash: str) -> None:
        sql = """
            UPDATE public.users
            SET password_hash = :password_hash
            WHERE id = :user_id
        """
        try:
            with self._engine.begin() as conn:
                conn.execute(text(sql), {"user_id": user_id, "password_hash": password_hash})
        except SQLAlchemyError as exc:
            raise UserDirectoryError("Failed to rehash password.") from exc

    def _fetch_one(self, sql: str, params: dict) -> User | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(text(sql), params).mappings().first()
        except SQLAlchemyError as exc:
            raise UserDirectoryError("User lookup failed.") from exc
        if row is None:
            return None
        return map_row_to_user(row)
