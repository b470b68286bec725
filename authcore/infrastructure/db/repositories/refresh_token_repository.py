from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, TypeVar
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authcore.application.ports.refresh_token_port import RefreshTokenPort
from authcore.domain.exceptions import TokenStoreError


TResult = TypeVar("TResult")


class SqlRefreshTokenRepository(RefreshTokenPort):
    """Refresh token rows keyed by SHA-256 hash; raw tokens never reach the database."""

    def __init__(self, engine, *, connection=None):
        self._engine = engine
        self._connection = connection

    @contextmanager
    def _begin(self) -> Iterator:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    def execute_in_transaction(self, fn: Callable[[RefreshTokenPort], TResult]) -> TResult:
        if self._connection is not None:
            return fn(self)
        try:
            with self._engine.begin() as conn:
                return fn(SqlRefreshTokenRepository(self._engine, connection=conn))
        except SQLAlchemyError as exc:
            raise TokenStoreError("Refresh token transaction failed.") from exc

    def store(self, *, user_id: str, token_hash: str, expires_at: datetime) -> None:
        sql = """
            INSERT INTO public.refresh_tokens (
                id, user_id, token_hash, expires_at, revoked_at, created_at
            ) VALUES (
                :id, :user_id, :token_hash, :expires_at, NULL, :created_at
            )
        """
        params = {
            "id": str(uuid4()),
            "user_id": user_id,
            "token_hash": token_hash,
            "expires_at": expires_at,
            "created_at": _utcnow(),
        }
        try:
            with self._begin() as conn:
                conn.execute(text(sql), params)
        except SQLAlchemyError as exc:
            raise TokenStoreError("Failed to store refresh token.") from exc

    def consume(self, *, token_hash: str) -> str | None:
        # Validity check and revocation in one statement; a concurrent consumer
        # of the same row re-evaluates the WHERE clause and matches nothing.
        sql = """
            UPDATE public.refresh_tokens
            SET revoked_at = :now
            WHERE token_hash = :token_hash
              AND revoked_at IS NULL
              AND expires_at > :now
            RETURNING user_id
        """
        try:
            with self._begin() as conn:
                row = conn.execute(
                    text(sql),
                    {"token_hash": token_hash, "now": _utcnow()},
                ).mappings().first()
        except SQLAlchemyError as exc:
            raise TokenStoreError("Failed to consume refresh token.") from exc
        if row is None:
            return None
        return str(row["user_id"])

    def revoke(self, *, token_hash: str) -> None:
        sql = """
            UPDATE public.refresh_tokens
            SET revoked_at = :now
            WHERE token_hash = :token_hash
              AND revoked_at IS NULL
        """
        try:
            with self._begin() as conn:
                conn.execute(text(sql), {"token_hash": token_hash, "now": _utcnow()})
        except SQLAlchemyError as exc:
            raise TokenStoreError("Failed to revoke refresh token.") from exc

    def revoke_all_for_user(self, *, user_id: str) -> int:
        sql = """
            UPDATE public.refresh_tokens
            SET revoked_at = :now
            WHERE user_id = :user_id
              AND revoked_at IS NULL
              AND expires_at > :now
        """
        try:
            with self._begin() as conn:
                result = conn.execute(text(sql), {"user_id": user_id, "now": _utcnow()})
        except SQLAlchemyError as exc:
            raise TokenStoreError("Failed to revoke refresh tokens for user.") from exc
        return int(result.rowcount or 0)

    def purge_expired(self, *, before: datetime) -> int:
        sql = """
            DELETE FROM public.refresh_tokens
            WHERE expires_at < :before
        """
        try:
            with self._begin() as conn:
                result = conn.execute(text(sql), {"before": before})
        except SQLAlchemyError as exc:
            raise TokenStoreError("Failed to purge expired refresh tokens.") from exc
        return int(result.rowcount or 0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
