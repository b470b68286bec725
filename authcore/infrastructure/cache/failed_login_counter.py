from __future__ import annotations

from redis import Redis
from redis.exceptions import RedisError

from authcore.application.ports.failed_login_counter_port import FailedLoginCounterPort
from authcore.domain.exceptions import CounterStoreError


FAILED_LOGIN_KEY_PREFIX = "auth:failed:"
FAILED_LOGIN_TTL_SECONDS = 15 * 60


class RedisFailedLoginCounter(FailedLoginCounterPort):
    """Per-origin failed login counter with a sliding 15 minute expiry."""

    def __init__(self, client: Redis, *, ttl_seconds: int = FAILED_LOGIN_TTL_SECONDS):
        self._client = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> RedisFailedLoginCounter:
        client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    @staticmethod
    def _key(key: str) -> str:
        return f"{FAILED_LOGIN_KEY_PREFIX}{key.strip() or 'unknown'}"

    def record_failure(self, key: str) -> int:
        redis_key = self._key(key)
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.incr(redis_key)
            pipe.expire(redis_key, self._ttl_seconds)
            count, _ = pipe.execute()
        except RedisError as exc:
            raise CounterStoreError("Failed to record login failure.") from exc
        return int(count)

    def get_count(self, key: str) -> int:
        try:
            value = self._client.get(self._key(key))
        except RedisError as exc:
            raise CounterStoreError("Failed to read login failure count.") from exc
        if value is None:
            return 0
        return int(value)

    def clear(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except RedisError as exc:
            raise CounterStoreError("Failed to clear login failures.") from exc
