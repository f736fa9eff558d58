"""Session and configuration cookie helpers."""
from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import Request, Response

from pos_api.core.config import Settings, get_settings
from pos_api.db.selector import parse_config_cookie


SESSION_COOKIE_NAME = "session_id"
CONFIG_COOKIE_NAME = "pos_config"
CONFIG_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def session_token(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def set_session_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def read_config_cookie(request: Request) -> Optional[dict[str, Any]]:
    return parse_config_cookie(request.cookies.get(CONFIG_COOKIE_NAME))


def write_config_cookie(response: Response, config: dict[str, Any], settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        CONFIG_COOKIE_NAME,
        json.dumps(config, separators=(",", ":")),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=CONFIG_COOKIE_MAX_AGE,
        path="/",
    )
