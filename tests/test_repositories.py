from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

import pytest

from pos_api.core.revalidation import PathRevalidator
from pos_api.db.errors import DuplicateRecordError, RecordNotFoundError, SerializationError
from pos_api.repositories import BusinessRepository, ProductRepository


def test_acme_tax_rate_update_keeps_fields_and_bumps_updated_at(repos):
    business = repos.businesses.create({"name": "Acme", "currency": "USD", "taxRate": 5})

    updated = repos.businesses.update(business["id"], {"taxRate": 7.5})

    assert updated["taxRate"] == 7.5
    assert updated["name"] == "Acme"
    assert updated["currency"] == "USD"
    assert updated["createdAt"] == business["createdAt"]
    assert updated["updatedAt"] > updated["createdAt"]
    assert repos.businesses.get_by_id(business["id"]) == updated


def test_updated_at_advances_on_the_real_clock(store):
    businesses = BusinessRepository(store)
    for _ in range(50):
        business = businesses.create({"name": "Acme", "taxRate": 5})
        updated = businesses.update(business["id"], {"taxRate": 7.5})
        assert updated["updatedAt"] > updated["createdAt"]


def test_updated_at_is_strictly_increasing_when_the_clock_stands_still(store):
    frozen = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    businesses = BusinessRepository(store, clock=lambda: frozen)
    business = businesses.create({"name": "Acme"})

    first = businesses.update(business["id"], {"taxRate": 1})
    second = businesses.update(business["id"], {"taxRate": 2})

    assert business["createdAt"] == "2024-01-01T12:00:00.000Z"
    assert first["updatedAt"] == "2024-01-01T12:00:00.001Z"
    assert second["updatedAt"] == "2024-01-01T12:00:00.002Z"


def test_create_then_get_round_trip(repos):
    created = repos.customers.create({"name": "Dana", "email": "dana@example.com", "loyaltyPoints": 0})
    assert created["id"]
    assert repos.customers.get_by_id(created["id"]) == created
    assert created in repos.customers.get_all()


def test_update_cannot_rewrite_identity(repos):
    created = repos.suppliers.create({"name": "Parts Co"})
    updated = repos.suppliers.update(created["id"], {"id": "other", "createdAt": "1999-01-01T00:00:00.000Z"})
    assert updated["id"] == created["id"]
    assert updated["createdAt"] == created["createdAt"]


def test_update_missing_record_raises(repos):
    with pytest.raises(RecordNotFoundError):
        repos.products.update("missing", {"price": 1})


def test_delete_then_get_returns_none(repos):
    created = repos.categories.create({"name": "Toys"})
    assert repos.categories.delete(created["id"]) is True
    assert repos.categories.get_by_id(created["id"]) is None
    with pytest.raises(RecordNotFoundError):
        repos.categories.delete(created["id"])


def test_seed_if_empty_is_idempotent(repos):
    assert repos.businesses.seed_if_empty() is True
    assert repos.businesses.seed_if_empty() is False
    assert repos.businesses.count() == 1

    assert repos.categories.seed_if_empty() is True
    assert repos.products.seed_if_empty() is True
    before = repos.products.count()
    assert repos.products.seed_if_empty() is False
    assert repos.products.count() == before == 8


def test_seeded_products_link_to_seeded_categories(repos):
    repos.categories.seed_if_empty()
    repos.products.seed_if_empty()
    category_ids = {c["id"] for c in repos.categories.get_all()}
    assert all(p["categoryId"] in category_ids for p in repos.products.get_all())


def test_concurrent_updates_last_write_wins_with_intact_record(store, clock):
    first = BusinessRepository(store, clock=clock)
    second = BusinessRepository(store, clock=clock)
    business = first.create({"name": "Race Inc", "taxRate": 1, "currency": "EUR"})
    barrier = threading.Barrier(2)

    def writer(repo, value):
        barrier.wait()
        repo.update(business["id"], {"taxRate": value})

    threads = [
        threading.Thread(target=writer, args=(first, 2)),
        threading.Thread(target=writer, args=(second, 3)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = first.get_by_id(business["id"])
    assert final["taxRate"] in (2, 3)
    assert final["name"] == "Race Inc"
    assert final["currency"] == "EUR"
    assert final["createdAt"] == business["createdAt"]


def test_corrupt_record_raises_serialization_error(store, repos):
    store.hset("products", "broken", "{not json")
    with pytest.raises(SerializationError):
        repos.products.get_by_id("broken")


def test_mutations_revalidate_paths(store, clock):
    revalidator = PathRevalidator()
    revalidator.cache.put("/api/v1/products?limit=5", {"products": []})
    seen: list[str] = []
    revalidator.subscribe(seen.append)
    products = ProductRepository(store, revalidator, clock=clock)

    products.create({"name": "Mug", "price": 5})

    assert "/api/v1/products" in seen
    assert "/dashboard/products" in seen
    assert len(revalidator.cache) == 0


def test_product_search_filters_and_limits(repos):
    repos.products.create({"name": "A", "categoryId": "c1", "isActive": True})
    repos.products.create({"name": "B", "categoryId": "c1", "isActive": False})
    repos.products.create({"name": "C", "categoryId": "c2", "isActive": True})

    assert [p["name"] for p in repos.products.search(category="c1")] == ["A", "B"]
    assert [p["name"] for p in repos.products.search(active=True)] == ["A", "C"]
    assert [p["name"] for p in repos.products.search(limit=1)] == ["A"]


def test_users_hide_password_and_reject_duplicate_email(repos, store):
    user = repos.users.create({"name": "Sam", "email": "Sam@Example.com", "password": "pw123456"})
    assert "password" not in user and "passwordHash" not in user
    stored = json.loads(store.hget("users", user["id"]))
    assert stored["passwordHash"].startswith("argon2$")
    assert stored["email"] == "Sam@Example.com"

    with pytest.raises(DuplicateRecordError):
        repos.users.create({"name": "Other", "email": "sam@example.com", "password": "x"})

    assert repos.users.authenticate("SAM@example.com", "pw123456")["id"] == user["id"]
    assert repos.users.authenticate("sam@example.com", "wrong") is None


def test_user_seed_always_ensures_default_admin(repos):
    repos.users.create({"name": "Existing", "email": "existing@example.com", "password": "x"})
    assert repos.users.seed_if_empty() is False
    admin = repos.users.get_by_email("admin@aenzbi.com")
    assert admin and admin["isSystemAdmin"] is True


def test_oauth_link_is_unique_per_account(repos):
    first = repos.users.create_or_get_from_oauth({"email": "o@example.com", "name": "O"}, "github", "42")
    again = repos.users.create_or_get_from_oauth({"email": "o@example.com"}, "github", "42")
    assert again["id"] == first["id"]

    other = repos.users.create({"name": "P", "email": "p@example.com", "password": "x"})
    with pytest.raises(DuplicateRecordError):
        repos.users.link_oauth_account(other["id"], "github", "42")


def test_subscription_mirrors_status_onto_business(repos):
    business = repos.businesses.create({"name": "Shop"})
    subscription = repos.subscriptions.create(
        {"businessId": business["id"], "planId": "plan_basic", "status": "active", "currentPeriodEnd": "2030-01-01"}
    )
    mirrored = repos.businesses.get_by_id(business["id"])
    assert mirrored["subscriptionId"] == subscription["id"]
    assert mirrored["subscriptionStatus"] == "active"

    repos.subscriptions.cancel(subscription["id"], at_period_end=False)
    assert repos.businesses.get_by_id(business["id"])["subscriptionStatus"] == "canceled"


def test_catalog_helpers(repos):
    repos.products.create({"name": "Low", "stock": 2, "lowStockThreshold": 5})
    repos.products.create({"name": "Plenty", "stock": 50, "lowStockThreshold": 5})
    assert [p["name"] for p in repos.products.low_stock()] == ["Low"]

    repos.suppliers.create({"name": "Open", "isActive": True})
    repos.suppliers.create({"name": "Closed", "isActive": False})
    assert [s["name"] for s in repos.suppliers.active()] == ["Open"]


def test_plans_and_invoices_ordering(repos):
    repos.plans.seed_if_empty()
    prices = [plan["price"] for plan in repos.plans.active_plans()]
    assert prices == sorted(prices)

    older = repos.invoices.create({"businessId": "b1", "amount": 10})
    newer = repos.invoices.create({"businessId": "b1", "amount": 20})
    repos.invoices.create({"businessId": "b2", "amount": 30})
    assert [i["id"] for i in repos.invoices.get_by_business("b1")] == [newer["id"], older["id"]]

    subscription = repos.subscriptions.create({"businessId": "b1", "status": "trialing"})
    assert repos.subscriptions.get_for_business("b1")["id"] == subscription["id"]
