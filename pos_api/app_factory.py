"""Entry point for ASGI servers (``uvicorn pos_api.app_factory:app``)."""
from pos_api.app import app, create_app

__all__ = ["app", "create_app"]
