from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from authcore.domain.exceptions import CounterStoreError
from authcore.infrastructure.cache.failed_login_counter import RedisFailedLoginCounter


class FakePipeline:
    def __init__(self, client: FakeRedis):
        self._client = client
        self._ops: list[tuple[str, tuple]] = []

    def incr(self, key: str):
        self._ops.append(("incr", (key,)))
        return self

    def expire(self, key: str, seconds: int):
        self._ops.append(("expire", (key, seconds)))
        return self

    def execute(self):
        return [getattr(self._client, name)(*args) for name, args in self._ops]


class FakeRedis:
    def __init__(self):
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.transactions: list[bool] = []
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("connection refused")

    def pipeline(self, transaction: bool = True):
        self._check()
        self.transactions.append(transaction)
        return FakePipeline(self)

    def incr(self, key: str) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True

    def get(self, key: str):
        self._check()
        value = self.values.get(key)
        return None if value is None else str(value)

    def delete(self, key: str) -> int:
        self._check()
        self.ttls.pop(key, None)
        return 1 if self.values.pop(key, None) is not None else 0


def test_record_failure_increments_and_refreshes_expiry_atomically():
    client = FakeRedis()
    counter = RedisFailedLoginCounter(client)

    assert counter.record_failure("10.0.0.1") == 1
    assert counter.record_failure("10.0.0.1") == 2

    assert client.values == {"auth:failed:10.0.0.1": 2}
    assert client.ttls == {"auth:failed:10.0.0.1": 900}
    assert client.transactions == [True, True]
    assert counter.get_count("10.0.0.1") == 2
    assert counter.get_count("10.0.0.2") == 0


def test_clear_resets_the_origin():
    client = FakeRedis()
    counter = RedisFailedLoginCounter(client, ttl_seconds=60)
    counter.record_failure("origin")

    counter.clear("origin")

    assert counter.get_count("origin") == 0
    assert client.ttls == {}


def test_blank_key_maps_to_unknown_bucket():
    client = FakeRedis()
    counter = RedisFailedLoginCounter(client)

    counter.record_failure("  ")

    assert "auth:failed:unknown" in client.values


def test_redis_errors_surface_as_counter_store_error():
    client = FakeRedis()
    client.down = True
    counter = RedisFailedLoginCounter(client)

    with pytest.raises(CounterStoreError):
        counter.record_failure("a")
    with pytest.raises(CounterStoreError):
        counter.get_count("a")
    with pytest.raises(CounterStoreError):
        counter.clear("a")
