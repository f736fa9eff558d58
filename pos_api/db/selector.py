"""
Backend selection.

The backend kind is resolved exactly once, when the application (or a CLI
script) builds its store; nothing downstream re-inspects the environment.
"""

from __future__ import annotations

import enum
import json
import logging
from typing import Any, Optional

from pos_api.core.config import Settings, get_settings

from .base import KVBackend
from .memory import MemoryBackend
from .rest import RestBackend
from .sdk import RedisBackend
from .store import KVStore

logger = logging.getLogger(__name__)


class BackendKind(str, enum.Enum):
    MEMORY = "memory"
    REST = "rest"
    SDK = "sdk"


def parse_config_cookie(raw: str | None) -> Optional[dict[str, Any]]:
    """Decode the persisted configuration cookie; malformed values count as absent."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed configuration cookie")
        return None
    return data if isinstance(data, dict) else None


def resolve_backend_kind(settings: Settings, pos_config: Optional[dict[str, Any]] = None) -> BackendKind:
    requested = (settings.kv_backend or "auto").lower()
    has_rest = bool(settings.kv_rest_api_url and settings.kv_rest_api_token)

    if requested != "auto":
        try:
            kind = BackendKind(requested)
        except ValueError:
            raise RuntimeError(f"Unknown KV_BACKEND '{settings.kv_backend}' (use auto, memory, rest or sdk)")
        if kind is BackendKind.REST and not has_rest:
            raise RuntimeError("KV_BACKEND=rest requires KV_REST_API_URL and KV_REST_API_TOKEN")
        if kind is BackendKind.SDK and not settings.redis_url:
            raise RuntimeError("KV_BACKEND=sdk requires REDIS_URL")
        return kind

    if has_rest:
        return BackendKind.REST
    if pos_config and pos_config.get("dbUrl"):
        # A configured external URL has no dedicated client; keep serving from memory.
        logger.warning(
            "Configuration cookie points at %s (%s); using the in-memory backend",
            pos_config.get("dbType") or "external database",
            pos_config.get("dbUrl"),
        )
        return BackendKind.MEMORY
    return BackendKind.MEMORY


def build_backend(kind: BackendKind, settings: Settings, *, transport=None, redis_client=None) -> KVBackend:
    if kind is BackendKind.REST:
        return RestBackend(
            settings.kv_rest_api_url,
            settings.kv_rest_api_token,
            read_only_token=settings.kv_rest_api_read_only_token,
            timeout=settings.kv_timeout_seconds,
            transport=transport,
        )
    if kind is BackendKind.SDK:
        return RedisBackend(settings.redis_url, client=redis_client, timeout=settings.kv_timeout_seconds)
    return MemoryBackend(sweep_interval=settings.kv_sweep_interval_seconds)


def create_store(
    settings: Settings | None = None,
    pos_config: Optional[dict[str, Any]] = None,
    *,
    kind: BackendKind | None = None,
    transport=None,
    redis_client=None,
) -> KVStore:
    """Build (but do not open) the store the rest of the process will share."""
    settings = settings or get_settings()
    if pos_config is None:
        pos_config = parse_config_cookie(settings.pos_config_json)
    kind = kind or resolve_backend_kind(settings, pos_config)
    backend = build_backend(kind, settings, transport=transport, redis_client=redis_client)
    logger.info("Selected %s key-value backend%s", kind.value, " (compat mode)" if settings.kv_compat_mode else "")
    return KVStore(backend, kind, compat=settings.kv_compat_mode)
