"""
Configuration helpers for the POS backend.

Settings are read once from the environment so that routers/services (and the
key-value backend selector in particular) never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

SESSION_TTL_DEFAULT = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    log_level: str
    kv_backend: str
    kv_rest_api_url: str
    kv_rest_api_token: str
    kv_rest_api_read_only_token: str
    kv_timeout_seconds: float
    redis_url: str
    kv_compat_mode: bool
    kv_sweep_interval_seconds: float
    session_ttl_seconds: int
    pos_config_json: str
    bootstrap_on_startup: bool
    bootstrap_max_retries: int

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"


def _int(value: str | None, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: str | None, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    app_env = (os.getenv("APP_ENV") or "dev").lower()
    token = os.getenv("KV_REST_API_TOKEN", "")
    return Settings(
        app_env=app_env,
        log_level=(os.getenv("LOG_LEVEL") or ("INFO" if app_env == "prod" else "DEBUG")).upper(),
        kv_backend=(os.getenv("KV_BACKEND") or "auto").strip().lower(),
        kv_rest_api_url=os.getenv("KV_REST_API_URL", "").rstrip("/"),
        kv_rest_api_token=token,
        kv_rest_api_read_only_token=os.getenv("KV_REST_API_READ_ONLY_TOKEN") or token,
        kv_timeout_seconds=_float(os.getenv("KV_TIMEOUT_SECONDS"), 5.0),
        redis_url=os.getenv("REDIS_URL", ""),
        kv_compat_mode=_bool(os.getenv("KV_COMPAT_MODE"), False),
        kv_sweep_interval_seconds=_float(os.getenv("KV_SWEEP_INTERVAL_SECONDS"), 1.0),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS"), SESSION_TTL_DEFAULT),
        pos_config_json=os.getenv("POS_CONFIG", ""),
        bootstrap_on_startup=_bool(os.getenv("BOOTSTRAP_ON_STARTUP"), True),
        bootstrap_max_retries=max(1, _int(os.getenv("BOOTSTRAP_MAX_RETRIES"), 3)),
    )
