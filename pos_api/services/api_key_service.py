"""X-API-Key verification for the public v1 API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from pos_api.core.utils import parse_iso, utc_now
from pos_api.repositories.api_keys import ApiKeyRepository

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class ApiKeyError(Exception):
    def __init__(self, message: str, code: str = "unauthorized", status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


@dataclass
class ApiKeyContext:
    key_id: str
    business_id: str
    permissions: list[str] = field(default_factory=list)

    def allows(self, permission: str) -> bool:
        return permission in self.permissions or "admin" in self.permissions


class ApiKeyService:
    def __init__(self, repository: ApiKeyRepository, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.repository = repository
        self._clock = clock

    def verify(self, presented: Optional[str]) -> ApiKeyContext:
        if not presented:
            raise ApiKeyError("API key is required", "api_key_required")
        record = self.repository.find_by_key(presented.strip())
        if not record:
            raise ApiKeyError("Invalid API key", "invalid_api_key")
        expires_at = parse_iso(record.get("expiresAt"))
        if expires_at and expires_at < self._clock():
            raise ApiKeyError("API key has expired", "api_key_expired")
        self.repository.touch(record["id"])
        return ApiKeyContext(
            key_id=record["id"],
            business_id=record.get("businessId", ""),
            permissions=list(record.get("permissions") or []),
        )

    def require(self, context: ApiKeyContext, permission: str) -> ApiKeyContext:
        if not context.allows(permission):
            logger.info("API key %s lacks %s permission", context.key_id, permission)
            raise ApiKeyError(f"API key lacks '{permission}' permission", "forbidden", 403)
        return context

    def issue(
        self,
        name: str,
        business_id: str,
        permissions: Sequence[str] | None = None,
        expires_in_days: int | None = None,
    ) -> dict:
        return self.repository.issue(name, business_id, permissions, expires_in_days)
