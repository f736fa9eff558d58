"""
Key-value store facade.

``KVStore`` is the only object repositories and services talk to. It is built
once (see ``selector.create_store``), opened by the application lifespan and
closed on shutdown. Failures surface as ``StoreError`` subclasses unless the
store runs in compatibility mode, where every failure is logged and replaced
by the legacy "empty" value of the operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from .base import KVBackend
from .errors import StoreError

if TYPE_CHECKING:
    from .selector import BackendKind

logger = logging.getLogger(__name__)


class KVStore:
    def __init__(self, backend: KVBackend, kind: "BackendKind | None" = None, *, compat: bool = False) -> None:
        self.backend = backend
        self.kind = kind
        self.compat = compat
        self._opened = False

    # ------------------------------------------------------------------ lifecycle
    def open(self) -> "KVStore":
        if not self._opened:
            self.backend.open()
            self._opened = True
        return self

    def close(self) -> None:
        if self._opened:
            self.backend.close()
            self._opened = False

    def __enter__(self) -> "KVStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def strict(self) -> "KVStore":
        """A facade over the same backend that always raises, whatever ``compat`` says."""
        if not self.compat:
            return self
        view = KVStore(self.backend, self.kind, compat=False)
        view._opened = self._opened
        return view

    @property
    def is_open(self) -> bool:
        return self._opened

    def _run(self, operation: str, fallback: Any, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except StoreError as exc:
            if not self.compat:
                raise
            logger.error("KV %s failed on %s backend: %s", operation, self.backend.name, exc)
            return fallback

    # ------------------------------------------------------------------ strings / keys
    def ping(self) -> bool:
        return self._run("ping", False, self.backend.ping)

    def get(self, key: str) -> Optional[str]:
        return self._run("get", None, self.backend.get, key)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        return self._run("set", False, self.backend.set, key, value, ex=ex)

    def delete(self, *keys: str) -> int:
        return self._run("del", 0, self.backend.delete, *keys)

    def exists(self, *keys: str) -> int:
        return self._run("exists", 0, self.backend.exists, *keys)

    def expire(self, key: str, seconds: int) -> bool:
        return self._run("expire", False, self.backend.expire, key, seconds)

    def keys(self, pattern: str = "*") -> list[str]:
        return self._run("keys", [], self.backend.keys, pattern)

    def incr(self, key: str) -> int:
        return self._run("incr", 0, self.backend.incr, key)

    def incrby(self, key: str, amount: int = 1) -> int:
        return self._run("incrby", 0, self.backend.incrby, key, amount)

    # ------------------------------------------------------------------ hashes
    def hget(self, key: str, field: str) -> Optional[str]:
        return self._run("hget", None, self.backend.hget, key, field)

    def hset(
        self,
        key: str,
        field: Optional[str] = None,
        value: Optional[str] = None,
        mapping: Optional[Mapping[str, str]] = None,
    ) -> int:
        return self._run("hset", 0, self.backend.hset, key, field, value, mapping)

    def hgetall(self, key: str) -> dict[str, str]:
        return self._run("hgetall", {}, self.backend.hgetall, key)

    def hdel(self, key: str, *fields: str) -> int:
        return self._run("hdel", 0, self.backend.hdel, key, *fields)

    def hlen(self, key: str) -> int:
        return self._run("hlen", 0, self.backend.hlen, key)

    # ------------------------------------------------------------------ sets
    def sadd(self, key: str, *members: str) -> int:
        return self._run("sadd", 0, self.backend.sadd, key, *members)

    def smembers(self, key: str) -> set[str]:
        return self._run("smembers", set(), self.backend.smembers, key)

    def srem(self, key: str, *members: str) -> int:
        return self._run("srem", 0, self.backend.srem, key, *members)

    # ------------------------------------------------------------------ sorted sets
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        return self._run("zadd", 0, self.backend.zadd, key, mapping)

    def zrange(self, key: str, start: int, stop: int) -> list[str]:
        return self._run("zrange", [], self.backend.zrange, key, start, stop)

    def zrem(self, key: str, *members: str) -> int:
        return self._run("zrem", 0, self.backend.zrem, key, *members)
