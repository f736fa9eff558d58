"""
REST key-value backend.

Every primitive maps to ``{base_url}/{operation}/{key}[/{extra}]`` with a
Bearer token; reads use the read-only token. Bodies are JSON and responses
look like ``{"result": ...}``. A ``204`` means "no value" and a ``404`` on a
read means the key or field is absent. No retries: the caller decides.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

from .base import KVBackend, hset_items
from .errors import BackendUnavailableError, SerializationError, StoreError, WrongTypeError

logger = logging.getLogger(__name__)

_MISSING = object()


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class RestBackend(KVBackend):
    name = "rest"

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        read_only_token: str | None = None,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url or not token:
            raise ValueError("REST backend requires a base URL and a token")
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._read_token = read_only_token or token
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def open(self) -> None:
        logger.info("Using KV REST backend at %s", self.base_url)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------ transport
    def _url(self, operation: str, *segments: Any) -> str:
        parts = [self.base_url, operation] + [_segment(s) for s in segments]
        return "/".join(parts)

    def _call(self, method: str, operation: str, *segments: Any, body: Any = _MISSING, read: bool = False) -> Any:
        token = self._read_token if method == "GET" else self._token
        headers = {"Authorization": f"Bearer {token}"}
        kwargs: dict[str, Any] = {"headers": headers}
        if body is not _MISSING:
            kwargs["json"] = body
        url = self._url(operation, *segments)
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError(f"KV REST {operation} timed out") from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailableError(f"KV REST {operation} failed: {exc}") from exc

        if response.status_code == 204:
            return None
        if response.status_code == 404 and read:
            return None
        if response.is_error:
            detail = response.text[:200]
            if "WRONGTYPE" in detail:
                raise WrongTypeError(f"KV REST {operation} on '{segments[0] if segments else ''}': {detail}")
            raise BackendUnavailableError(f"KV REST {operation} returned HTTP {response.status_code}")
        if not response.content:
            return None
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise SerializationError(f"KV REST {operation} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise SerializationError(f"KV REST {operation} returned an unexpected body")
        if payload.get("error"):
            raise StoreError(f"KV REST {operation}: {payload['error']}")
        return payload.get("result")

    # ------------------------------------------------------------------ strings / keys
    def ping(self) -> bool:
        self._call("GET", "ping")
        return True

    def get(self, key: str) -> Optional[str]:
        result = self._call("GET", "get", key, read=True)
        return None if result is None else str(result)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        body: dict[str, Any] = {"value": str(value)}
        if ex:
            body["ex"] = int(ex)
        self._call("POST", "set", key, body=body)
        return True

    def delete(self, *keys: str) -> int:
        return sum(int(self._call("DELETE", "del", key) or 0) for key in keys)

    def exists(self, *keys: str) -> int:
        return sum(int(self._call("GET", "exists", key, read=True) or 0) for key in keys)

    def expire(self, key: str, seconds: int) -> bool:
        return bool(self._call("POST", "expire", key, body={"seconds": int(seconds)}))

    def keys(self, pattern: str = "*") -> list[str]:
        return sorted(str(k) for k in (self._call("GET", "keys", pattern, read=True) or []))

    def incrby(self, key: str, amount: int = 1) -> int:
        return int(self._call("POST", "incrby", key, body={"increment": int(amount)}) or 0)

    # ------------------------------------------------------------------ hashes
    def hget(self, key: str, field: str) -> Optional[str]:
        result = self._call("GET", "hget", key, field, read=True)
        return None if result is None else str(result)

    def hset(self, key, field=None, value=None, mapping=None) -> int:
        added = 0
        for item_field, item_value in hset_items(field, value, mapping).items():
            added += int(self._call("POST", "hset", key, body={"field": item_field, "value": item_value}) or 0)
        return added

    def hgetall(self, key: str) -> dict[str, str]:
        result = self._call("GET", "hgetall", key, read=True)
        if not result:
            return {}
        if isinstance(result, list):
            # flat [field, value, field, value] replies
            result = dict(zip(result[0::2], result[1::2]))
        if not isinstance(result, dict):
            raise SerializationError(f"KV REST hgetall returned {type(result).__name__}")
        return {str(k): str(v) for k, v in result.items()}

    def hdel(self, key: str, *fields: str) -> int:
        return sum(int(self._call("DELETE", "hdel", key, field) or 0) for field in fields)

    def hlen(self, key: str) -> int:
        return int(self._call("GET", "hlen", key, read=True) or 0)

    # ------------------------------------------------------------------ sets
    def sadd(self, key: str, *members: str) -> int:
        return int(self._call("POST", "sadd", key, body={"members": [str(m) for m in members]}) or 0)

    def smembers(self, key: str) -> set[str]:
        return {str(m) for m in (self._call("GET", "smembers", key, read=True) or [])}

    def srem(self, key: str, *members: str) -> int:
        return int(self._call("POST", "srem", key, body={"members": [str(m) for m in members]}) or 0)

    # ------------------------------------------------------------------ sorted sets
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        added = 0
        for member, score in mapping.items():
            added += int(self._call("POST", "zadd", key, body={"score": float(score), "member": str(member)}) or 0)
        return added

    def zrange(self, key: str, start: int, stop: int) -> list[str]:
        return [str(m) for m in (self._call("GET", "zrange", key, int(start), int(stop), read=True) or [])]

    def zrem(self, key: str, *members: str) -> int:
        return int(self._call("POST", "zrem", key, body={"members": [str(m) for m in members]}) or 0)
