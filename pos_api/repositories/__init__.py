"""
Per-entity repositories over the shared key-value store.

``Repositories.build(store, revalidator)`` wires every repository once so
services and routers can share the same instances through ``app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass

from pos_api.core.config import SESSION_TTL_DEFAULT
from pos_api.core.revalidation import PathRevalidator
from pos_api.db.store import KVStore

from .api_keys import ApiKeyRepository
from .base import DocumentRepository, HashRepository
from .business import DEFAULT_BUSINESS_ID, BusinessRepository
from .categories import CategoryRepository
from .customers import CustomerRepository
from .orders import OrderRepository
from .products import ProductRepository
from .purchase_orders import PurchaseOrderRepository
from .subscriptions import InvoiceRepository, SubscriptionPlanRepository, SubscriptionRepository
from .suppliers import SupplierRepository
from .users import SessionRepository, UserRepository
from .warehouses import InventoryError, InventoryTransferRepository, WarehouseRepository


@dataclass
class Repositories:
    businesses: BusinessRepository
    users: UserRepository
    sessions: SessionRepository
    categories: CategoryRepository
    products: ProductRepository
    customers: CustomerRepository
    orders: OrderRepository
    suppliers: SupplierRepository
    purchase_orders: PurchaseOrderRepository
    plans: SubscriptionPlanRepository
    subscriptions: SubscriptionRepository
    invoices: InvoiceRepository
    warehouses: WarehouseRepository
    transfers: InventoryTransferRepository
    api_keys: ApiKeyRepository

    @classmethod
    def build(
        cls,
        store: KVStore,
        revalidator: PathRevalidator | None = None,
        *,
        clock=None,
        session_ttl_seconds: int | None = None,
    ) -> "Repositories":
        common = {"clock": clock}
        businesses = BusinessRepository(store, revalidator, **common)
        categories = CategoryRepository(store, revalidator, **common)
        products = ProductRepository(store, revalidator, categories=categories, **common)
        customers = CustomerRepository(store, revalidator, **common)
        warehouses = WarehouseRepository(store, revalidator, **common)
        sessions = SessionRepository(
            store, revalidator, ttl_seconds=session_ttl_seconds or SESSION_TTL_DEFAULT, **common
        )
        return cls(
            businesses=businesses,
            users=UserRepository(store, revalidator, **common),
            sessions=sessions,
            categories=categories,
            products=products,
            customers=customers,
            orders=OrderRepository(store, revalidator, customers=customers, products=products, **common),
            suppliers=SupplierRepository(store, revalidator, **common),
            purchase_orders=PurchaseOrderRepository(store, revalidator, products=products, **common),
            plans=SubscriptionPlanRepository(store, revalidator, **common),
            subscriptions=SubscriptionRepository(store, revalidator, businesses=businesses, **common),
            invoices=InvoiceRepository(store, revalidator, **common),
            warehouses=warehouses,
            transfers=InventoryTransferRepository(store, revalidator, warehouses=warehouses, **common),
            api_keys=ApiKeyRepository(store, revalidator, **common),
        )

    def bound_to(self, store: KVStore) -> "Repositories":
        """The same wiring (revalidator, clock, session TTL) over another store facade."""
        if store is self.businesses.store:
            return self
        return self.build(
            store,
            self.businesses.revalidator,
            clock=self.businesses._clock,
            session_ttl_seconds=self.sessions.ttl_seconds,
        )


__all__ = [
    "ApiKeyRepository",
    "BusinessRepository",
    "CategoryRepository",
    "CustomerRepository",
    "DEFAULT_BUSINESS_ID",
    "DocumentRepository",
    "HashRepository",
    "InventoryError",
    "InventoryTransferRepository",
    "InvoiceRepository",
    "OrderRepository",
    "ProductRepository",
    "PurchaseOrderRepository",
    "Repositories",
    "SessionRepository",
    "SubscriptionPlanRepository",
    "SubscriptionRepository",
    "SupplierRepository",
    "UserRepository",
    "WarehouseRepository",
]
