from __future__ import annotations

import logging

from pos_api.db.errors import StoreError

from .base import HashRepository, absorbs

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_ID = "default"


class BusinessRepository(HashRepository):
    bucket = "businesses"
    revalidate_paths = ("/dashboard/settings",)

    def seed_records(self):
        return [
            {
                "name": "My Business",
                "type": "retail",
                "address": "123 Main St, Anytown, USA",
                "phone": "(555) 123-4567",
                "email": "info@mybusiness.com",
                "logo": "/placeholder.svg?height=100&width=100",
                "currency": "USD",
                "taxRate": 8.5,
                "timeZone": "America/New_York",
            }
        ]

    @absorbs(False)
    def seed_if_empty(self) -> bool:
        """
        Seed the default business. If that fails, try once more with a minimal
        record under the fixed id ``default`` before giving up.
        """
        try:
            return super().seed_if_empty()
        except StoreError as exc:
            logger.error("Failed to seed default business: %s", exc)
            self.write_fallback()
            logger.warning("Created fallback business '%s'", DEFAULT_BUSINESS_ID)
            return True

    def write_fallback(self) -> dict:
        record = self.build(
            {
                "name": "Default Business",
                "type": "retail",
                "address": "123 Main St",
                "phone": "555-1234",
                "email": "default@example.com",
                "currency": "USD",
                "taxRate": 0,
                "timeZone": "UTC",
            },
            record_id=DEFAULT_BUSINESS_ID,
        )
        self._write(record)
        return record
