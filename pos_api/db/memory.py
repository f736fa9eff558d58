"""
In-memory backend.

Holds every value in process memory; a restart loses all data. Keys with an
expiry disappear from reads as soon as the deadline passes and are physically
removed by ``sweep_expired`` (run periodically by a daemon thread between
``open`` and ``close``).
"""

from __future__ import annotations

import fnmatch
import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional

from .base import KVBackend, hset_items
from .errors import StoreError, WrongTypeError

logger = logging.getLogger(__name__)


class _SortedSet(dict):
    """member -> score"""


class MemoryBackend(KVBackend):
    name = "memory"

    def __init__(self, *, sweep_interval: float = 1.0, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, Any] = {}
        self._expirations: dict[str, float] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._sweep_interval = max(0.05, float(sweep_interval))
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    # ------------------------------------------------------------------ lifecycle
    def open(self) -> None:
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="kv-memory-sweeper", daemon=True)
        self._sweeper.start()
        logger.info("Using in-memory key-value backend (sweep every %.2fs)", self._sweep_interval)

    def close(self) -> None:
        self._stop.set()
        if self._sweeper:
            self._sweeper.join(timeout=self._sweep_interval * 2)
        self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self._sweep_interval):
            self.sweep_expired()

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            doomed = [key for key, deadline in self._expirations.items() if deadline <= now]
            for key in doomed:
                self._data.pop(key, None)
                self._expirations.pop(key, None)
        if doomed:
            logger.debug("Swept %d expired keys", len(doomed))
        return len(doomed)

    # ------------------------------------------------------------------ helpers
    def _alive(self, key: str) -> bool:
        deadline = self._expirations.get(key)
        if deadline is not None and deadline <= self._clock():
            self._data.pop(key, None)
            self._expirations.pop(key, None)
        return key in self._data

    def _typed(self, key: str, kind: type, create: bool = False):
        if not self._alive(key):
            if not create:
                return None
            self._data[key] = kind()
        value = self._data[key]
        if type(value) is not kind:
            raise WrongTypeError(f"Operation against key '{key}' holding the wrong kind of value")
        return value

    def _drop_if_empty(self, key: str, container) -> None:
        if not container:
            self._data.pop(key, None)
            self._expirations.pop(key, None)

    # ------------------------------------------------------------------ strings / keys
    def ping(self) -> bool:
        return True

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._typed(key, str)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        with self._lock:
            self._data[key] = str(value)
            if ex:
                self._expirations[key] = self._clock() + int(ex)
            else:
                self._expirations.pop(key, None)
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._alive(key):
                    del self._data[key]
                    removed += 1
                self._expirations.pop(key, None)
        return removed

    def exists(self, *keys: str) -> int:
        with self._lock:
            return sum(1 for key in keys if self._alive(key))

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            if not self._alive(key):
                return False
            self._expirations[key] = self._clock() + int(seconds)
            return True

    def keys(self, pattern: str = "*") -> list[str]:
        with self._lock:
            return sorted(key for key in list(self._data) if self._alive(key) and fnmatch.fnmatchcase(key, pattern))

    def incrby(self, key: str, amount: int = 1) -> int:
        with self._lock:
            current = self._typed(key, str)
            try:
                value = int(current or 0) + int(amount)
            except ValueError as exc:
                raise StoreError(f"Value at '{key}' is not an integer") from exc
            self._data[key] = str(value)
            return value

    # ------------------------------------------------------------------ hashes
    def hget(self, key: str, field: str) -> Optional[str]:
        with self._lock:
            bucket = self._typed(key, dict)
            return bucket.get(field) if bucket else None

    def hset(self, key, field=None, value=None, mapping=None) -> int:
        items = hset_items(field, value, mapping)
        with self._lock:
            bucket = self._typed(key, dict, create=True)
            added = sum(1 for f in items if f not in bucket)
            bucket.update(items)
            return added

    def hgetall(self, key: str) -> dict[str, str]:
        with self._lock:
            bucket = self._typed(key, dict)
            return dict(bucket) if bucket else {}

    def hdel(self, key: str, *fields: str) -> int:
        with self._lock:
            bucket = self._typed(key, dict)
            if not bucket:
                return 0
            removed = sum(1 for f in fields if bucket.pop(f, None) is not None)
            self._drop_if_empty(key, bucket)
            return removed

    def hlen(self, key: str) -> int:
        with self._lock:
            bucket = self._typed(key, dict)
            return len(bucket) if bucket else 0

    # ------------------------------------------------------------------ sets
    def sadd(self, key: str, *members: str) -> int:
        with self._lock:
            bucket = self._typed(key, set, create=True)
            before = len(bucket)
            bucket.update(str(m) for m in members)
            return len(bucket) - before

    def smembers(self, key: str) -> set[str]:
        with self._lock:
            bucket = self._typed(key, set)
            return set(bucket) if bucket else set()

    def srem(self, key: str, *members: str) -> int:
        with self._lock:
            bucket = self._typed(key, set)
            if not bucket:
                return 0
            removed = 0
            for member in members:
                if member in bucket:
                    bucket.discard(member)
                    removed += 1
            self._drop_if_empty(key, bucket)
            return removed

    # ------------------------------------------------------------------ sorted sets
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        with self._lock:
            bucket = self._typed(key, _SortedSet, create=True)
            added = sum(1 for m in mapping if m not in bucket)
            for member, score in mapping.items():
                bucket[str(member)] = float(score)
            return added

    def zrange(self, key: str, start: int, stop: int) -> list[str]:
        with self._lock:
            bucket = self._typed(key, _SortedSet)
            if not bucket:
                return []
            ordered = [m for m, _ in sorted(bucket.items(), key=lambda item: (item[1], item[0]))]
        size = len(ordered)
        if start < 0:
            start = max(size + start, 0)
        if stop < 0:
            stop = size + stop
        if start > stop or start >= size:
            return []
        return ordered[start : stop + 1]

    def zrem(self, key: str, *members: str) -> int:
        with self._lock:
            bucket = self._typed(key, _SortedSet)
            if not bucket:
                return 0
            removed = sum(1 for m in members if bucket.pop(m, None) is not None)
            self._drop_if_empty(key, bucket)
            return removed
