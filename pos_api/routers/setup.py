from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pos_api.core.rate_limiter import rate_limit_ip
from pos_api.services.session_service import read_config_cookie, write_config_cookie
from pos_api.services.setup_service import SetupResult

from .deps import app_settings, get_setup_service

router = APIRouter(prefix="/setup", tags=["setup"])


class DatabasePayload(BaseModel):
    dbType: str
    dbUrl: Optional[str] = None


class AdminPayload(BaseModel):
    name: str
    email: str
    password: str


class BusinessPayload(BaseModel):
    name: str
    type: str = "retail"
    currency: str = "USD"


def _respond(request: Request, result: SetupResult) -> JSONResponse:
    if not result.success:
        return JSONResponse(result.as_dict(), status_code=result.status_code)
    response = JSONResponse(result.as_dict())
    if result.config:
        write_config_cookie(response, result.config, app_settings(request))
    return response


@router.get("/status")
async def setup_status(request: Request):
    return get_setup_service(request).status(read_config_cookie(request))


@router.post("/database")
async def save_database(payload: DatabasePayload, request: Request):
    rate_limit_ip(request, "setup:database", limit=10, window_seconds=60)
    result = get_setup_service(request).save_database_config(payload.dbType, payload.dbUrl)
    return _respond(request, result)


@router.post("/admin")
async def create_admin(payload: AdminPayload, request: Request):
    rate_limit_ip(request, "setup:admin", limit=5, window_seconds=60)
    service = get_setup_service(request)
    result = service.create_admin(
        read_config_cookie(request), name=payload.name, email=payload.email, password=payload.password
    )
    return _respond(request, result)


@router.post("/business")
async def create_business(payload: BusinessPayload, request: Request):
    service = get_setup_service(request)
    result = service.create_business(
        read_config_cookie(request), name=payload.name, type=payload.type, currency=payload.currency
    )
    return _respond(request, result)
