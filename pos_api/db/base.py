"""Interface every key-value backend implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from .errors import InvalidCommandError


class KVBackend(ABC):
    """
    Redis-shaped primitives over strings, hashes, sets and sorted sets.

    Implementations raise ``StoreError`` subclasses on failure; absence of a
    key/field is reported as ``None``/empty, never as an exception.
    """

    name = "abstract"

    def open(self) -> None:
        """Acquire background resources (sweepers, connections)."""

    def close(self) -> None:
        """Release whatever ``open`` acquired."""

    @abstractmethod
    def ping(self) -> bool: ...

    # strings / keys
    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool: ...

    @abstractmethod
    def delete(self, *keys: str) -> int: ...

    @abstractmethod
    def exists(self, *keys: str) -> int: ...

    @abstractmethod
    def expire(self, key: str, seconds: int) -> bool: ...

    @abstractmethod
    def keys(self, pattern: str = "*") -> list[str]: ...

    @abstractmethod
    def incrby(self, key: str, amount: int = 1) -> int: ...

    def incr(self, key: str) -> int:
        return self.incrby(key, 1)

    # hashes
    @abstractmethod
    def hget(self, key: str, field: str) -> Optional[str]: ...

    @abstractmethod
    def hset(
        self,
        key: str,
        field: Optional[str] = None,
        value: Optional[str] = None,
        mapping: Optional[Mapping[str, str]] = None,
    ) -> int: ...

    @abstractmethod
    def hgetall(self, key: str) -> dict[str, str]: ...

    @abstractmethod
    def hdel(self, key: str, *fields: str) -> int: ...

    @abstractmethod
    def hlen(self, key: str) -> int: ...

    # sets
    @abstractmethod
    def sadd(self, key: str, *members: str) -> int: ...

    @abstractmethod
    def smembers(self, key: str) -> set[str]: ...

    @abstractmethod
    def srem(self, key: str, *members: str) -> int: ...

    # sorted sets
    @abstractmethod
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int: ...

    @abstractmethod
    def zrange(self, key: str, start: int, stop: int) -> list[str]: ...

    @abstractmethod
    def zrem(self, key: str, *members: str) -> int: ...


def hset_items(field: Optional[str], value: Optional[str], mapping: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Normalize the (field, value) / mapping calling conventions of ``hset``."""
    items: dict[str, str] = {}
    if field is not None:
        if value is None:
            raise InvalidCommandError("hset requires a value when a field is given")
        items[str(field)] = str(value)
    for key, val in (mapping or {}).items():
        items[str(key)] = str(val)
    if not items:
        raise InvalidCommandError("hset requires at least one field")
    return items
