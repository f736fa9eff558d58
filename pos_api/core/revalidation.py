"""
Page/render cache invalidation.

Repositories call ``revalidate(path)`` after every mutation; the signal is
one-way (no acknowledgement) and only drops cached payloads whose path equals
the given path or lives below it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class RenderCache:
    """Tiny in-process cache of rendered payloads keyed by request path (+ query)."""

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, payload: Any) -> None:
        with self._lock:
            self._entries[key] = payload

    def drop_path(self, path: str) -> int:
        base = path.rstrip("/") or "/"
        with self._lock:
            doomed = [
                key
                for key in self._entries
                if key.split("?", 1)[0] == base or key.startswith(base + "/")
            ]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PathRevalidator:
    def __init__(self, cache: RenderCache | None = None) -> None:
        self.cache = cache or RenderCache()
        self._listeners: list[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def revalidate(self, path: str) -> None:
        dropped = self.cache.drop_path(path)
        logger.debug("Revalidated %s (%d cached entries dropped)", path, dropped)
        for listener in list(self._listeners):
            try:
                listener(path)
            except Exception:
                logger.exception("Revalidation listener failed for %s", path)
