"""Subscription plans, business subscriptions and billing invoices."""

from __future__ import annotations

import logging
from typing import Optional

from pos_api.db.errors import RecordNotFoundError

from .base import HashRepository, Record, absorbs
from .business import BusinessRepository

logger = logging.getLogger(__name__)

STATUS_CANCELED = "canceled"


class SubscriptionPlanRepository(HashRepository):
    bucket = "subscription_plans"
    revalidate_paths = ("/dashboard/subscriptions",)

    def active_plans(self) -> list[Record]:
        plans = self.find(lambda plan: plan.get("isActive"))
        return sorted(plans, key=lambda plan: plan.get("price") or 0)

    def seed_records(self):
        def limits(users, products, transactions, locations, custom_fields, api, white_label, priority):
            return {
                "users": users,
                "products": products,
                "transactions": transactions,
                "locations": locations,
                "customFields": custom_fields,
                "apiAccess": api,
                "whiteLabel": white_label,
                "prioritySupport": priority,
            }

        return [
            {
                "name": "Free",
                "description": "Basic features for small businesses just getting started",
                "price": 0,
                "interval": "month",
                "currency": "USD",
                "features": ["Up to 100 products", "1 user account", "Basic reporting", "Standard support",
                             "Single location"],
                "isActive": True,
                "limits": limits(1, 100, 100, 1, False, False, False, False),
            },
            {
                "name": "Starter",
                "description": "Essential features for growing businesses",
                "price": 29.99,
                "interval": "month",
                "currency": "USD",
                "features": ["Up to 500 products", "3 user accounts", "Advanced reporting", "Email support",
                             "Up to 2 locations", "Custom fields"],
                "isActive": True,
                "limits": limits(3, 500, 1000, 2, True, False, False, False),
            },
            {
                "name": "Professional",
                "description": "Advanced features for established businesses",
                "price": 79.99,
                "interval": "month",
                "currency": "USD",
                "features": ["Unlimited products", "10 user accounts", "Advanced analytics", "Priority support",
                             "Up to 5 locations", "API access", "Custom fields", "White labeling"],
                "isActive": True,
                "limits": limits(10, 10000, 10000, 5, True, True, True, True),
            },
            {
                "name": "Enterprise",
                "description": "Complete solution for large businesses",
                "price": 199.99,
                "interval": "month",
                "currency": "USD",
                "features": ["Unlimited everything", "Unlimited users", "Enterprise analytics",
                             "24/7 dedicated support", "Unlimited locations", "Advanced API access",
                             "Custom development", "White labeling", "Custom integrations"],
                "isActive": True,
                "limits": limits(100, 100000, 100000, 100, True, True, True, True),
            },
        ]


class SubscriptionRepository(HashRepository):
    """
    Business subscriptions. Status changes are mirrored onto the business
    record (``subscriptionId``, ``subscriptionStatus``,
    ``subscriptionPeriodEnd``); the mirror write is a separate, non-atomic step.
    """

    bucket = "subscriptions"
    revalidate_paths = ("/dashboard/billing",)

    def __init__(self, store, revalidator=None, *, clock=None, businesses: BusinessRepository | None = None) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.businesses = businesses or BusinessRepository(store, revalidator, clock=clock)

    def _mirror(self, business_id: str | None, changes: Record) -> None:
        if not business_id or not changes:
            return
        try:
            self.businesses._apply_update(business_id, changes)
        except RecordNotFoundError:
            logger.warning("Subscription refers to unknown business %s", business_id)

    @absorbs(None)
    def get_for_business(self, business_id: str) -> Optional[Record]:
        matches = self.get_by_business(business_id)
        return matches[0] if matches else None

    @absorbs(None)
    def create(self, data: Record) -> Record:
        record = self.build(data)
        self._write(record)
        self._mirror(
            record.get("businessId"),
            {
                "subscriptionId": record["id"],
                "subscriptionStatus": record.get("status"),
                "subscriptionPeriodEnd": record.get("currentPeriodEnd"),
            },
        )
        self.revalidate()
        return record

    @absorbs(None)
    def update(self, record_id: str, changes: Record) -> Record:
        updated = self._apply_update(record_id, changes)
        if changes.get("status"):
            mirrored = {"subscriptionStatus": updated.get("status")}
            if changes.get("currentPeriodEnd"):
                mirrored["subscriptionPeriodEnd"] = updated.get("currentPeriodEnd")
            self._mirror(updated.get("businessId"), mirrored)
        return updated

    @absorbs(None)
    def cancel(self, record_id: str, at_period_end: bool = True) -> Record:
        changes: Record = {"cancelAtPeriodEnd": at_period_end}
        if not at_period_end:
            changes["status"] = STATUS_CANCELED
        updated = self._apply_update(record_id, changes)
        self._mirror(updated.get("businessId"), {"subscriptionStatus": STATUS_CANCELED} if not at_period_end else {})
        return updated


class InvoiceRepository(HashRepository):
    bucket = "invoices"
    revalidate_paths = ("/dashboard/billing",)

    def get_by_business(self, business_id: str) -> list[Record]:
        invoices = super().get_by_business(business_id)
        return sorted(invoices, key=lambda invoice: invoice.get("createdAt") or "", reverse=True)
