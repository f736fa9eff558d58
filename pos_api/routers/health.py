from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pos_api.core.utils import isoformat, utc_now
from pos_api.db.errors import StoreError

from .deps import app_settings, get_store

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(request: Request):
    settings = app_settings(request)
    store = get_store(request)
    details = {"backend": store.backend.name}
    try:
        connected = store.ping()
    except StoreError as exc:
        logger.warning("Health check ping failed: %s", exc)
        connected = False
        details["error"] = exc.message
    body = {
        "status": "ok" if connected else "degraded",
        "timestamp": isoformat(utc_now()),
        "redis": {"status": "connected" if connected else "disconnected", "details": details},
        "environment": settings.app_env,
    }
    return JSONResponse(body, status_code=200 if connected else 503)
