from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from pos_api.db.errors import StoreError
from pos_api.db.store import KVStore

logger = logging.getLogger(__name__)


class StoreRateLimiter:
    """Fixed-window counter kept in the shared store (``ratelimit:{scope}:{ip}``)."""

    def __init__(self, store: KVStore) -> None:
        self.store = store

    def check(self, key: str, limit: int, window_seconds: int) -> None:
        counter = f"ratelimit:{key}"
        try:
            count = self.store.incr(counter)
            if count == 1:
                self.store.expire(counter, window_seconds)
        except StoreError as exc:
            # Store failures never block the request.
            logger.warning("Rate limit check skipped for %s: %s", key, exc)
            return
        if count > limit:
            logger.info("Rate limit exceeded for %s (%d/%d)", key, count, limit)
            raise HTTPException(429, "Too many requests. Try again shortly.")


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise RuntimeError("Rate limiter not configured")
    limiter.check(f"{scope}:{_client_ip(request)}", limit, window_seconds)
