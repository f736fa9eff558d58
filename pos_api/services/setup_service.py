"""
First-run setup wizard: database connection check, admin account, business.

The wizard's progress is carried in the ``pos_config`` cookie; this service
returns the updated configuration and the router persists it. Completion is
also recorded server-side under ``system:setup_complete``; from then on every
wizard step is refused with 403.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from pos_api.core.config import Settings
from pos_api.core.revalidation import PathRevalidator
from pos_api.db.errors import DuplicateRecordError, StoreError
from pos_api.repositories.business import BusinessRepository
from pos_api.repositories.users import UserRepository
from pos_api.services.bootstrap_service import SETUP_COMPLETE_KEY

logger = logging.getLogger(__name__)

DB_TYPES = ("redis", "upstash", "vercel-kv")
BUSINESS_TYPES = ("retail", "restaurant", "salon", "hotel", "grocery")


@dataclass
class SetupResult:
    success: bool
    message: Optional[str] = None
    config: dict[str, Any] = field(default_factory=dict)
    status_code: int = 400

    def as_dict(self) -> dict:
        body: dict[str, Any] = {"success": self.success}
        if self.message:
            body["message"] = self.message
        return body


class SetupService:
    def __init__(
        self,
        settings: Settings,
        users: UserRepository,
        businesses: BusinessRepository,
        revalidator: PathRevalidator | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.users = users
        self.businesses = businesses
        self.revalidator = revalidator
        self._transport = transport

    def is_complete(self) -> bool:
        try:
            return self.users.store.strict().get(SETUP_COMPLETE_KEY) == "true"
        except StoreError as exc:
            logger.error("Could not read setup state, treating setup as complete: %s", exc)
            return True

    def _locked(self) -> Optional[SetupResult]:
        if self.is_complete():
            logger.warning("Rejected setup step: setup is already complete")
            return SetupResult(False, "Setup has already been completed", status_code=403)
        return None

    def status(self, config: Optional[dict]) -> dict:
        config = config or {}
        return {
            "setupComplete": config.get("setupComplete") is True or self.is_complete(),
            "dbType": config.get("dbType"),
            "hasAdmin": bool(config.get("adminUserId")),
            "businessId": config.get("businessId"),
        }

    def test_connection(self, db_type: str, db_url: Optional[str] = None) -> SetupResult:
        if db_type not in DB_TYPES:
            return SetupResult(False, f"Unsupported database type '{db_type}'")
        try:
            with httpx.Client(timeout=self.settings.kv_timeout_seconds, transport=self._transport) as client:
                if db_type == "vercel-kv":
                    if not (self.settings.kv_rest_api_url and self.settings.kv_rest_api_token):
                        return SetupResult(
                            False,
                            "KV REST environment variables are not configured (KV_REST_API_URL, KV_REST_API_TOKEN).",
                        )
                    response = client.get(
                        f"{self.settings.kv_rest_api_url.rstrip('/')}/ping",
                        headers={"Authorization": f"Bearer {self.settings.kv_rest_api_token}"},
                    )
                else:
                    if not db_url:
                        return SetupResult(False, "Database URL is required")
                    response = client.head(db_url)
        except httpx.HTTPError as exc:
            logger.warning("Database connection test failed: %s", exc)
            return SetupResult(False, f"Failed to connect to database: {exc}")
        if response.is_error:
            return SetupResult(False, f"Failed to connect to database: {response.reason_phrase or response.status_code}")
        return SetupResult(True)

    def save_database_config(self, db_type: str, db_url: Optional[str] = None) -> SetupResult:
        locked = self._locked()
        if locked:
            return locked
        result = self.test_connection(db_type, db_url)
        if not result.success:
            return result
        config = {
            "dbType": db_type,
            "dbUrl": self.settings.kv_rest_api_url if db_type == "vercel-kv" else db_url,
            "setupComplete": False,
        }
        logger.info("Saved %s database configuration", db_type)
        return SetupResult(True, config=config)

    def create_admin(self, config: Optional[dict], *, name: str, email: str, password: str) -> SetupResult:
        locked = self._locked()
        if locked:
            return locked
        if not (name and email and password):
            return SetupResult(False, "Name, email and password are required")
        try:
            user = self.users.create(
                {"name": name, "email": email, "password": password, "role": "admin", "businessId": "default"}
            )
        except DuplicateRecordError as exc:
            return SetupResult(False, exc.message)
        except StoreError as exc:
            logger.error("Failed to create admin user: %s", exc)
            return SetupResult(False, "Failed to create admin user")
        if not user:
            return SetupResult(False, "Failed to create admin user")
        updated = dict(config or {})
        updated["adminUserId"] = user["id"]
        return SetupResult(True, config=updated)

    def create_business(self, config: Optional[dict], *, name: str, type: str, currency: str) -> SetupResult:
        locked = self._locked()
        if locked:
            return locked
        if not name:
            return SetupResult(False, "Business name is required")
        if type not in BUSINESS_TYPES:
            return SetupResult(False, f"Unsupported business type '{type}'")
        try:
            business = self.businesses.create(
                {
                    "name": name,
                    "type": type,
                    "address": "",
                    "phone": "",
                    "email": "",
                    "currency": currency or "USD",
                    "taxRate": 0,
                    "timeZone": "UTC",
                }
            )
        except StoreError as exc:
            logger.error("Failed to create business: %s", exc)
            return SetupResult(False, "Failed to create business")
        if not business:
            return SetupResult(False, "Failed to create business")

        try:
            self.users.store.strict().set(SETUP_COMPLETE_KEY, "true")
        except StoreError as exc:
            logger.error("Failed to record setup completion: %s", exc)
            return SetupResult(False, "Failed to complete setup")

        updated = dict(config or {})
        updated["businessId"] = business["id"]
        updated["setupComplete"] = True
        if updated.get("adminUserId"):
            try:
                self.users.update(updated["adminUserId"], {"businessId": business["id"]})
            except StoreError as exc:
                logger.warning("Could not attach admin %s to business: %s", updated["adminUserId"], exc)
        if self.revalidator:
            self.revalidator.revalidate("/dashboard")
            self.revalidator.revalidate("/login")
        logger.info("Setup completed for business %s", business["id"])
        return SetupResult(True, config=updated)
