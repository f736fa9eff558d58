"""
FastAPI routers grouped by concern (health, auth, products API, setup, admin).

Each module exposes an ``APIRouter`` included by ``pos_api.app.create_app``.
Shared services are read from ``request.app.state`` through ``deps``.
"""
