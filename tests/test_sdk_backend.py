from __future__ import annotations

import pytest
import redis

from pos_api.db.errors import BackendUnavailableError, StoreError, WrongTypeError
from pos_api.db.sdk import RedisBackend


class FakeRedis:
    """Just enough of redis.Redis for the backend wrapper."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.closed = False
        self.fail_with: Exception | None = None

    def _maybe_fail(self):
        if self.fail_with:
            raise self.fail_with

    def ping(self):
        self._maybe_fail()
        return True

    def hset(self, key, field=None, value=None, mapping=None):
        self._maybe_fail()
        bucket = self.hashes.setdefault(key, {})
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        added = sum(1 for f in items if f not in bucket)
        bucket.update(items)
        return added

    def hgetall(self, key):
        self._maybe_fail()
        return dict(self.hashes.get(key, {}))

    def close(self):
        self.closed = True


def test_hset_passes_mapping_to_client():
    client = FakeRedis()
    backend = RedisBackend(client=client)

    assert backend.hset("businesses", "acme", '{"id":"acme"}') == 1
    assert backend.hset("businesses", mapping={"acme": "{}", "beta": "{}"}) == 1
    assert backend.hgetall("businesses") == {"acme": "{}", "beta": "{}"}


def test_connection_errors_become_backend_unavailable():
    client = FakeRedis()
    client.fail_with = redis.exceptions.ConnectionError("down")
    backend = RedisBackend(client=client)
    with pytest.raises(BackendUnavailableError):
        backend.ping()


def test_wrongtype_response_is_typed():
    client = FakeRedis()
    client.fail_with = redis.exceptions.ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
    backend = RedisBackend(client=client)
    with pytest.raises(WrongTypeError):
        backend.hgetall("plain")


def test_other_redis_errors_are_store_errors():
    client = FakeRedis()
    client.fail_with = redis.exceptions.ResponseError("ERR unknown command")
    backend = RedisBackend(client=client)
    with pytest.raises(StoreError) as excinfo:
        backend.hgetall("h")
    assert not isinstance(excinfo.value, WrongTypeError)


def test_close_closes_client_and_url_is_required():
    client = FakeRedis()
    RedisBackend(client=client).close()
    assert client.closed is True
    with pytest.raises(ValueError):
        RedisBackend()
