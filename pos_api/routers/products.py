from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pos_api.services.api_key_service import API_KEY_HEADER, ApiKeyContext

from .deps import error_response, get_api_key_service, get_repos, get_revalidator

router = APIRouter(prefix="/api/v1/products", tags=["products"])
logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "price", "categoryId")


def _authorize(request: Request, permission: str = "read") -> ApiKeyContext:
    service = get_api_key_service(request)
    context = service.verify(request.headers.get(API_KEY_HEADER))
    return service.require(context, permission)


def _flag(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


async def _json_body(request: Request) -> Optional[dict]:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _not_found() -> JSONResponse:
    return error_response("not_found", "Product not found", 404)


@router.get("")
async def list_products(
    request: Request,
    category: Optional[str] = None,
    active: Optional[str] = None,
    limit: Optional[int] = None,
):
    _authorize(request)
    cache = get_revalidator(request).cache
    cache_key = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    cached = cache.get(cache_key)
    if cached is not None:
        return cached
    products = get_repos(request).products.search(category=category, active=_flag(active), limit=limit)
    payload = {"products": products}
    cache.put(cache_key, payload)
    return payload


@router.post("")
async def create_product(request: Request):
    _authorize(request, "write")
    body = await _json_body(request)
    if body is None:
        return error_response("invalid_body", "Request body must be a JSON object", 400)
    missing = [name for name in REQUIRED_FIELDS if not body.get(name)]
    if missing:
        return error_response("missing_fields", f"Missing required fields: {', '.join(missing)}", 400)
    repo = get_repos(request).products
    product = repo.create(repo.normalize_new(body))
    if not product:
        return error_response("create_failed", "Failed to create product", 500)
    logger.info("Created product %s through the API", product["id"])
    return JSONResponse({"product": product}, status_code=201)


@router.get("/{product_id}")
async def get_product(product_id: str, request: Request):
    _authorize(request)
    product = get_repos(request).products.get_by_id(product_id)
    if not product:
        return _not_found()
    return {"product": product}


@router.put("/{product_id}")
async def update_product(product_id: str, request: Request):
    _authorize(request, "write")
    repo = get_repos(request).products
    if not repo.get_by_id(product_id):
        return _not_found()
    body = await _json_body(request)
    if body is None:
        return error_response("invalid_body", "Request body must be a JSON object", 400)
    product = repo.update(product_id, body)
    if not product:
        return error_response("update_failed", "Failed to update product", 500)
    return {"product": product}


@router.delete("/{product_id}")
async def delete_product(product_id: str, request: Request):
    _authorize(request, "write")
    repo = get_repos(request).products
    if not repo.get_by_id(product_id):
        return _not_found()
    if not repo.delete(product_id):
        return error_response("delete_failed", "Failed to delete product", 500)
    return {"success": True}
