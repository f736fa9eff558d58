from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from pos_api.services.bootstrap_service import ADMINS_KEY, RebuildRefusedError, rebuild_database

from .deps import app_settings, error_response, get_repos, get_store

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class RebuildPayload(BaseModel):
    force: bool = False


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


@router.post("/rebuild-database")
async def rebuild(request: Request, payload: RebuildPayload | None = None):
    store = get_store(request)
    token = _bearer_token(request)
    if not token or not store.hget(ADMINS_KEY, token):
        logger.warning("Unauthorized database rebuild attempt")
        return error_response("unauthorized", "Unauthorized", 401)

    settings = app_settings(request)
    try:
        report = rebuild_database(
            store,
            get_repos(request),
            force=bool(payload and payload.force),
            app_env=settings.app_env,
            max_retries=settings.bootstrap_max_retries,
        )
    except RebuildRefusedError as exc:
        return error_response(exc.code, exc.message, exc.status_code)
    return {"message": "Database rebuilt successfully", **report.as_dict()}
