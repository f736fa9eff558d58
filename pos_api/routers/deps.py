from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from pos_api.core.config import Settings, get_settings
from pos_api.core.revalidation import PathRevalidator
from pos_api.db.store import KVStore
from pos_api.repositories import Repositories
from pos_api.services.api_key_service import ApiKeyService
from pos_api.services.auth_service import AuthService
from pos_api.services.setup_service import SetupService


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not configured")
    return value


def get_store(request: Request) -> KVStore:
    return _state(request, "store")


def get_repos(request: Request) -> Repositories:
    return _state(request, "repos")


def get_revalidator(request: Request) -> PathRevalidator:
    return _state(request, "revalidator")


def get_auth_service(request: Request) -> AuthService:
    return _state(request, "auth_service")


def get_api_key_service(request: Request) -> ApiKeyService:
    return _state(request, "api_key_service")


def get_setup_service(request: Request) -> SetupService:
    return _state(request, "setup_service")


def app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"ok": False, "error": code, "message": message}, status_code=status_code)
