from __future__ import annotations

import dataclasses

import httpx
import pytest
from fastapi.testclient import TestClient

from pos_api.app import create_app
from pos_api.core.config import get_settings
from pos_api.db.memory import MemoryBackend
from pos_api.db.selector import BackendKind
from pos_api.db.store import KVStore
from pos_api.services.bootstrap_service import ADMINS_KEY
from pos_api.services.setup_service import SetupService


@pytest.fixture
def app_store():
    return KVStore(MemoryBackend(sweep_interval=60), BackendKind.MEMORY)


@pytest.fixture
def app(app_store):
    settings = dataclasses.replace(get_settings(), bootstrap_on_startup=True, bootstrap_max_retries=1)
    return create_app(settings, app_store, sleep=lambda seconds: None)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _key(app, *permissions: str) -> str:
    business_id = app.state.repos.businesses.get_all()[0]["id"]
    return app.state.api_key_service.issue("tests", business_id, list(permissions) or None)["key"]


def test_health_reports_connected_store_and_security_headers(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["redis"]["status"] == "connected"
    assert body["redis"]["details"]["backend"] == "memory"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_startup_bootstrap_seeds_store(app, client):
    assert app.state.bootstrap_report.success is True
    assert app.state.store.get("system:initialized") == "true"


def test_login_me_logout_flow(client):
    assert client.get("/auth/me").status_code == 401

    response = client.post("/auth/login", json={"email": "admin@aenzbi.com", "password": "adminsystem"})
    assert response.status_code == 200
    assert "session_id" in response.cookies
    assert "passwordHash" not in response.json()["user"]

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "admin@aenzbi.com"

    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401


def test_login_failure_uses_error_shape(client):
    response = client.post("/auth/login", json={"email": "admin@aenzbi.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {
        "ok": False,
        "error": "invalid_credentials",
        "message": "Invalid email or password",
    }


def test_login_is_rate_limited_per_ip(client):
    statuses = [
        client.post("/auth/login", json={"email": "x@example.com", "password": "bad"}).status_code for _ in range(11)
    ]
    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429


def test_products_api_requires_api_key(client):
    response = client.get("/api/v1/products")
    assert response.status_code == 401
    assert response.json()["error"] == "api_key_required"

    response = client.get("/api/v1/products", headers={"X-API-Key": "bogus"})
    assert response.status_code == 401


def test_products_api_list_is_cached_until_mutation(app, client):
    read = {"X-API-Key": _key(app, "read")}
    write = {"X-API-Key": _key(app, "read", "write")}

    first = client.get("/api/v1/products", headers=read).json()["products"]
    assert len(first) == 8
    assert len(app.state.revalidator.cache) == 1

    created = client.post(
        "/api/v1/products", headers=write, json={"name": "Scarf", "price": 12.5, "categoryId": "cat-1"}
    )
    assert created.status_code == 201
    product = created.json()["product"]
    assert product["isActive"] is True
    assert product["stock"] == 0

    assert len(app.state.revalidator.cache) == 0
    assert len(client.get("/api/v1/products", headers=read).json()["products"]) == 9
    limited = client.get("/api/v1/products", headers=read, params={"category": "cat-1", "limit": 5})
    assert [p["name"] for p in limited.json()["products"]] == ["Scarf"]


def test_products_api_crud_and_permissions(app, client):
    read = {"X-API-Key": _key(app, "read")}
    write = {"X-API-Key": _key(app, "read", "write")}

    assert client.post("/api/v1/products", headers=read, json={"name": "x"}).status_code == 403
    assert client.post("/api/v1/products", headers=write, json={"name": "x"}).status_code == 400

    product = client.post(
        "/api/v1/products", headers=write, json={"name": "Cap", "price": 9, "categoryId": "c"}
    ).json()["product"]

    updated = client.put(f"/api/v1/products/{product['id']}", headers=write, json={"price": 11})
    assert updated.status_code == 200
    assert updated.json()["product"]["price"] == 11
    assert updated.json()["product"]["name"] == "Cap"

    assert client.get(f"/api/v1/products/{product['id']}", headers=read).json()["product"]["price"] == 11
    assert client.delete(f"/api/v1/products/{product['id']}", headers=write).json() == {"success": True}
    assert client.get(f"/api/v1/products/{product['id']}", headers=read).status_code == 404
    assert client.put("/api/v1/products/missing", headers=write, json={}).status_code == 404


def test_setup_wizard_flow(app, client):
    settings = app.state.settings
    repos = app.state.repos
    ok_transport = httpx.MockTransport(lambda request: httpx.Response(200))
    app.state.setup_service = SetupService(
        settings, repos.users, repos.businesses, app.state.revalidator, transport=ok_transport
    )

    assert client.get("/setup/status").json()["setupComplete"] is False

    missing_env = client.post("/setup/database", json={"dbType": "vercel-kv"})
    assert missing_env.status_code == 400
    assert missing_env.json()["success"] is False

    assert client.post("/setup/database", json={"dbType": "redis", "dbUrl": "https://db.example.com"}).status_code == 200
    assert client.post(
        "/setup/admin", json={"name": "Owner", "email": "owner@example.com", "password": "owner-pass"}
    ).status_code == 200
    assert client.post("/setup/business", json={"name": "Corner Shop", "type": "grocery", "currency": "EUR"}).status_code == 200

    status = client.get("/setup/status").json()
    assert status["setupComplete"] is True
    assert status["hasAdmin"] is True
    owner = repos.users.get_by_email("owner@example.com")
    assert owner["businessId"] == status["businessId"]


def test_setup_is_closed_once_complete(app, client):
    repos = app.state.repos
    ok_transport = httpx.MockTransport(lambda request: httpx.Response(200))
    app.state.setup_service = SetupService(
        app.state.settings, repos.users, repos.businesses, app.state.revalidator, transport=ok_transport
    )
    client.post("/setup/admin", json={"name": "Owner", "email": "owner@example.com", "password": "owner-pass"})
    assert client.post("/setup/business", json={"name": "Corner Shop"}).status_code == 200

    stranger = TestClient(app)
    intruder = {"name": "Intruder", "email": "intruder@example.com", "password": "intruder-pass"}
    blocked = stranger.post("/setup/admin", json=intruder)
    assert blocked.status_code == 403
    assert blocked.json()["success"] is False
    assert stranger.post("/setup/business", json={"name": "Other Shop"}).status_code == 403
    assert stranger.post("/setup/database", json={"dbType": "redis", "dbUrl": "https://db.example.com"}).status_code == 403
    assert stranger.get("/setup/status").json()["setupComplete"] is True

    assert repos.users.get_by_email("intruder@example.com") is None
    login = stranger.post("/auth/login", json={"email": "intruder@example.com", "password": "intruder-pass"})
    assert login.status_code == 401


def test_rebuild_endpoint_requires_admin_token(app, client):
    assert client.post("/api/admin/rebuild-database", json={}).status_code == 401
    headers = {"Authorization": "Bearer not-an-admin"}
    assert client.post("/api/admin/rebuild-database", headers=headers, json={}).status_code == 401

    app.state.store.hset(ADMINS_KEY, "root-token", "granted")
    app.state.repos.products.create({"name": "Temp"})
    response = client.post(
        "/api/admin/rebuild-database", headers={"Authorization": "Bearer root-token"}, json={"force": False}
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert app.state.repos.products.count() == 8
