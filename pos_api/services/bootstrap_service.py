"""
Database bootstrap: seeding with retry/backoff and the destructive rebuild.

``initialize_database`` seeds every bucket that is still empty, in dependency
order. A failed pass is retried from the top after ``2**attempt`` seconds;
once retries are exhausted only the business and user buckets are seeded so
an operator can still log in.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pos_api import __version__
from pos_api.core.utils import isoformat, utc_now
from pos_api.db.errors import StoreError
from pos_api.db.store import KVStore
from pos_api.repositories import Repositories

logger = logging.getLogger(__name__)

METADATA_KEY = "system:metadata"
INITIALIZED_KEY = "system:initialized"
SETUP_COMPLETE_KEY = "system:setup_complete"
ADMINS_KEY = "admins"

# Hashes owned by repositories; child hashes are matched by pattern.
DATA_BUCKETS = (
    "businesses",
    "users",
    "sessions",
    "oauth_accounts",
    "categories",
    "products",
    "customers",
    "orders",
    "suppliers",
    "purchase_orders",
    "subscription_plans",
    "subscriptions",
    "invoices",
    "warehouses",
    "inventory_transfers",
    "api_keys",
)
CHILD_PATTERNS = (
    "order_items:*",
    "purchase_order_items:*",
    "inventory_transfer_items:*",
    "warehouse_inventory:*",
    "system:*",
)


class RebuildRefusedError(Exception):
    code = "rebuild_refused"
    status_code = 403

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class BootstrapReport:
    success: bool
    attempts: int
    degraded: bool = False

    def as_dict(self) -> dict:
        return {"success": self.success, "attempts": self.attempts, "degraded": self.degraded}


def _seed_steps(repos: Repositories) -> list[tuple[str, Callable[[], bool]]]:
    return [
        ("business", repos.businesses.seed_if_empty),
        ("users", repos.users.seed_if_empty),
        ("categories", repos.categories.seed_if_empty),
        ("products", repos.products.seed_if_empty),
        ("customers", repos.customers.seed_if_empty),
        ("orders", repos.orders.seed_if_empty),
        ("suppliers", repos.suppliers.seed_if_empty),
        ("subscription plans", repos.plans.seed_if_empty),
    ]


def _mark_initialized(store: KVStore) -> None:
    now = isoformat(utc_now())
    initialized_at = store.hget(METADATA_KEY, "initialized_at") or now
    store.hset(
        METADATA_KEY,
        mapping={"version": __version__, "initialized_at": initialized_at, "last_updated": now},
    )
    store.set(INITIALIZED_KEY, "true")


def is_initialized(store: KVStore) -> bool:
    return store.get(INITIALIZED_KEY) == "true"


def seed_critical(repos: Repositories) -> bool:
    """Seed only what login needs. Returns False when even that failed."""
    ok = True
    for name, step in (("business", repos.businesses.seed_if_empty), ("users", repos.users.seed_if_empty)):
        try:
            step()
        except StoreError as exc:
            logger.error("Critical seed of %s failed: %s", name, exc)
            ok = False
    return ok


def initialize_database(
    store: KVStore,
    repos: Optional[Repositories] = None,
    *,
    max_retries: int = 3,
    sleep: Callable[[float], None] = time.sleep,
) -> BootstrapReport:
    # Seeding runs on the strict view so failures reach the retry loop in compat mode too.
    seed_store = store.strict()
    repos = (repos or Repositories.build(store)).bound_to(seed_store)
    max_retries = max(1, int(max_retries))

    try:
        if not store.ping():
            logger.warning("Store ping returned no PONG; continuing with initialization")
    except StoreError as exc:
        logger.warning("Store ping failed: %s", exc)

    for attempt in range(1, max_retries + 1):
        try:
            for name, step in _seed_steps(repos):
                logger.debug("Seeding %s", name)
                step()
            _mark_initialized(seed_store)
            logger.info("Database initialized on attempt %d", attempt)
            return BootstrapReport(success=True, attempts=attempt)
        except StoreError as exc:
            logger.error("Initialization attempt %d/%d failed: %s", attempt, max_retries, exc)
            if attempt < max_retries:
                delay = 2 ** attempt
                logger.info("Retrying initialization in %ss", delay)
                sleep(delay)

    logger.warning("Initialization failed after %d attempts; seeding critical data only", max_retries)
    seed_critical(repos)
    return BootstrapReport(success=False, attempts=max_retries, degraded=True)


def rebuild_database(
    store: KVStore,
    repos: Optional[Repositories] = None,
    *,
    force: bool = False,
    app_env: str = "dev",
    max_retries: int = 3,
    sleep: Callable[[float], None] = time.sleep,
) -> BootstrapReport:
    """Wipe every application key and seed again. The ``admins`` hash and the setup-complete flag survive."""
    if app_env.lower() == "prod" and not force:
        raise RebuildRefusedError("Refusing to rebuild a production database without force")

    strict = store.strict()
    keys = list(DATA_BUCKETS)
    for pattern in CHILD_PATTERNS:
        keys.extend(key for key in strict.keys(pattern) if key != SETUP_COMPLETE_KEY)
    removed = strict.delete(*keys) if keys else 0
    logger.warning("Rebuild removed %d keys", removed)

    return initialize_database(store, repos, max_retries=max_retries, sleep=sleep)
