"""Redis client backend (redis-py, string responses)."""

from __future__ import annotations

import functools
import logging
from typing import Any, Mapping, Optional

import redis

from .base import KVBackend, hset_items
from .errors import BackendUnavailableError, StoreError, WrongTypeError

logger = logging.getLogger(__name__)


def _translate(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as exc:
            raise BackendUnavailableError(f"Redis {method.__name__} failed: {exc}") from exc
        except redis.exceptions.ResponseError as exc:
            if str(exc).startswith("WRONGTYPE"):
                raise WrongTypeError(str(exc)) from exc
            raise StoreError(f"Redis {method.__name__} failed: {exc}") from exc
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Redis {method.__name__} failed: {exc}") from exc

    return wrapper


class RedisBackend(KVBackend):
    name = "sdk"

    def __init__(self, url: str | None = None, *, client: Any = None, timeout: float = 5.0) -> None:
        if client is None:
            if not url:
                raise ValueError("Redis backend requires REDIS_URL or an explicit client")
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        self._client = client

    def open(self) -> None:
        logger.info("Using Redis client key-value backend")

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()

    @_translate
    def ping(self) -> bool:
        return bool(self._client.ping())

    @_translate
    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    @_translate
    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        return bool(self._client.set(key, str(value), ex=int(ex) if ex else None))

    @_translate
    def delete(self, *keys: str) -> int:
        return int(self._client.delete(*keys)) if keys else 0

    @_translate
    def exists(self, *keys: str) -> int:
        return int(self._client.exists(*keys)) if keys else 0

    @_translate
    def expire(self, key: str, seconds: int) -> bool:
        return bool(self._client.expire(key, int(seconds)))

    @_translate
    def keys(self, pattern: str = "*") -> list[str]:
        return sorted(self._client.keys(pattern))

    @_translate
    def incrby(self, key: str, amount: int = 1) -> int:
        return int(self._client.incrby(key, int(amount)))

    @_translate
    def hget(self, key: str, field: str) -> Optional[str]:
        return self._client.hget(key, field)

    @_translate
    def hset(self, key, field=None, value=None, mapping=None) -> int:
        return int(self._client.hset(key, mapping=hset_items(field, value, mapping)))

    @_translate
    def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._client.hgetall(key) or {})

    @_translate
    def hdel(self, key: str, *fields: str) -> int:
        return int(self._client.hdel(key, *fields)) if fields else 0

    @_translate
    def hlen(self, key: str) -> int:
        return int(self._client.hlen(key))

    @_translate
    def sadd(self, key: str, *members: str) -> int:
        return int(self._client.sadd(key, *members)) if members else 0

    @_translate
    def smembers(self, key: str) -> set[str]:
        return set(self._client.smembers(key) or ())

    @_translate
    def srem(self, key: str, *members: str) -> int:
        return int(self._client.srem(key, *members)) if members else 0

    @_translate
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        return int(self._client.zadd(key, {str(m): float(s) for m, s in mapping.items()}))

    @_translate
    def zrange(self, key: str, start: int, stop: int) -> list[str]:
        return list(self._client.zrange(key, int(start), int(stop)))

    @_translate
    def zrem(self, key: str, *members: str) -> int:
        return int(self._client.zrem(key, *members)) if members else 0
