from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pos_api.core.rate_limiter import rate_limit_ip
from pos_api.services.auth_service import AuthError
from pos_api.services.session_service import clear_session_cookie, session_token, set_session_cookie

from .deps import app_settings, error_response, get_auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginPayload(BaseModel):
    email: str = ""
    password: str = ""


@router.post("/login")
async def login(payload: LoginPayload, request: Request):
    rate_limit_ip(request, "auth:login", limit=10, window_seconds=60)
    service = get_auth_service(request)
    try:
        result = service.login(payload.email, payload.password)
    except AuthError as exc:
        return error_response(exc.code, exc.message, exc.status_code)
    response = JSONResponse({"ok": True, "user": result.user, "expiresAt": result.expires_at})
    set_session_cookie(response, result.session_id, app_settings(request))
    return response


@router.post("/logout")
async def logout(request: Request):
    get_auth_service(request).logout(session_token(request))
    response = JSONResponse({"ok": True})
    clear_session_cookie(response)
    return response


@router.get("/me")
async def me(request: Request):
    service = get_auth_service(request)
    try:
        user = service.require_user(session_token(request))
    except AuthError as exc:
        return error_response(exc.code, exc.message, exc.status_code)
    return {"ok": True, "user": user}
