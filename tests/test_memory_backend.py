from __future__ import annotations

import pytest

from pos_api.db.errors import StoreError, WrongTypeError
from pos_api.db.memory import MemoryBackend


@pytest.fixture
def backend(manual_time):
    return MemoryBackend(sweep_interval=60, clock=manual_time)


def test_expired_key_disappears_after_clock_advance(backend, manual_time):
    backend.set("greeting", "hello", ex=10)
    assert backend.get("greeting") == "hello"

    manual_time.advance(9)
    assert backend.exists("greeting") == 1

    manual_time.advance(2)
    assert backend.get("greeting") is None
    assert backend.keys("*") == []


def test_sweep_removes_expired_keys(backend, manual_time):
    backend.set("a", "1", ex=5)
    backend.set("b", "2")
    backend.hset("h", "f", "v")
    backend.expire("h", 5)

    manual_time.advance(6)
    assert backend.sweep_expired() == 2
    assert backend.keys() == ["b"]


def test_set_without_ttl_clears_previous_expiry(backend, manual_time):
    backend.set("k", "1", ex=5)
    backend.set("k", "2")
    manual_time.advance(10)
    assert backend.get("k") == "2"


def test_expire_on_missing_key_is_false(backend):
    assert backend.expire("nope", 10) is False


def test_incr_counts_and_rejects_non_integers(backend):
    assert backend.incrby("hits") == 1
    assert backend.incrby("hits", 4) == 5
    backend.set("name", "bob")
    with pytest.raises(StoreError):
        backend.incrby("name")


def test_hash_operations(backend):
    assert backend.hset("user:1", mapping={"name": "Ann", "role": "admin"}) == 2
    assert backend.hset("user:1", "name", "Anna") == 0
    assert backend.hget("user:1", "name") == "Anna"
    assert backend.hlen("user:1") == 2
    assert backend.hdel("user:1", "role", "missing") == 1
    assert backend.hgetall("user:1") == {"name": "Anna"}
    backend.hdel("user:1", "name")
    assert backend.exists("user:1") == 0


def test_wrong_type_is_reported(backend):
    backend.set("plain", "x")
    with pytest.raises(WrongTypeError):
        backend.hget("plain", "f")
    backend.sadd("tags", "a")
    with pytest.raises(WrongTypeError):
        backend.get("tags")


def test_sets_and_sorted_sets(backend):
    assert backend.sadd("s", "a", "b", "a") == 2
    assert backend.smembers("s") == {"a", "b"}
    assert backend.srem("s", "a", "z") == 1

    backend.zadd("z", {"c": 3, "a": 1, "b": 2})
    assert backend.zrange("z", 0, -1) == ["a", "b", "c"]
    assert backend.zrange("z", 1, 1) == ["b"]
    assert backend.zrange("z", -2, -1) == ["b", "c"]
    assert backend.zrange("z", 5, 10) == []
    assert backend.zrem("z", "b") == 1
    assert backend.zrange("z", 0, -1) == ["a", "c"]


def test_keys_glob_is_sorted(backend):
    for key in ("order_items:2", "order_items:1", "orders"):
        backend.hset(key, "f", "v")
    assert backend.keys("order_items:*") == ["order_items:1", "order_items:2"]


def test_open_and_close_manage_sweeper_thread():
    backend = MemoryBackend(sweep_interval=0.05)
    backend.open()
    assert backend._sweeper is not None and backend._sweeper.is_alive()
    backend.close()
    assert backend._sweeper is None
