from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar


TRefreshResult = TypeVar("TRefreshResult")


class RefreshTokenPort(Protocol):
    def execute_in_transaction(
        self, fn: Callable[[RefreshTokenPort], TRefreshResult]
    ) -> TRefreshResult:
        ...

    def store(self, *, user_id: str, token_hash: str, expires_at: datetime) -> None:
        ...

    def consume(self, *, token_hash: str) -> str | None:
        ...

    def revoke(self, *, token_hash: str) -> None:
        ...

    def revoke_all_for_user(self, *, user_id: str) -> int:
        ...

    def purge_expired(self, *, before: datetime) -> int:
        ...
