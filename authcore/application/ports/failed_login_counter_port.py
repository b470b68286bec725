from __future__ import annotations

from typing import Protocol


class FailedLoginCounterPort(Protocol):
    def record_failure(self, key: str) -> int:
        ...

    def get_count(self, key: str) -> int:
        ...

    def clear(self, key: str) -> None:
        ...
