from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Sequence

from pos_api.core.security import constant_time_equals, new_api_key
from pos_api.core.utils import isoformat, random_base36, to_base36

from .base import HashRepository, Record, absorbs

logger = logging.getLogger(__name__)

DEFAULT_PERMISSIONS = ("read",)


class ApiKeyRepository(HashRepository):
    bucket = "api_keys"
    id_prefix = "apikey_"

    @absorbs(None)
    def issue(
        self,
        name: str,
        business_id: str,
        permissions: Sequence[str] | None = None,
        expires_in_days: int | None = None,
    ) -> Record:
        issued = self._clock()
        record = {
            "id": f"{self.id_prefix}{to_base36(int(issued.timestamp() * 1000))}_{random_base36(4)}",
            "key": new_api_key(),
            "name": name,
            "businessId": business_id,
            "permissions": list(permissions or DEFAULT_PERMISSIONS),
            "createdAt": isoformat(issued),
        }
        if expires_in_days:
            record["expiresAt"] = isoformat(issued + timedelta(days=int(expires_in_days)))
        self._write(record)
        logger.info("Issued API key %s for business %s", record["id"], business_id)
        return record

    @absorbs(None)
    def find_by_key(self, key: str) -> Optional[Record]:
        """Linear scan over every stored key; fine for the handful of keys a business holds."""
        if not key:
            return None
        for record in self._read_hash(self.bucket):
            if constant_time_equals(record.get("key"), key):
                return record
        return None

    @absorbs(None)
    def touch(self, key_id: str) -> Optional[Record]:
        record = self._load(key_id)
        if record is None:
            return None
        record["lastUsedAt"] = self.now()
        self._write(record)
        return record
