from __future__ import annotations

import pytest

from pos_api.db.errors import RecordNotFoundError
from pos_api.repositories import InventoryError


def test_order_with_items_round_trip_and_delete(repos, store):
    order = repos.orders.create_with_items(
        {"customerId": "c1", "status": "pending", "total": 30},
        [{"productId": "p1", "quantity": 1, "price": 10}, {"productId": "p2", "quantity": 2, "price": 10}],
    )
    assert order["orderNumber"].startswith("ORD-")

    items = repos.orders.get_items(order["id"])
    assert sorted(item["productId"] for item in items) == ["p1", "p2"]
    assert all(item["orderId"] == order["id"] for item in items)

    assert repos.orders.delete(order["id"]) is True
    assert repos.orders.get_by_id(order["id"]) is None
    assert store.exists(f"order_items:{order['id']}") == 0


def test_seeded_orders_reference_seeded_customers_and_products(repos):
    repos.categories.seed_if_empty()
    repos.products.seed_if_empty()
    repos.customers.seed_if_empty()
    assert repos.orders.seed_if_empty() is True

    customer_ids = {c["id"] for c in repos.customers.get_all()}
    product_ids = {p["id"] for p in repos.products.get_all()}
    orders = repos.orders.get_all()
    assert len(orders) == 4
    for order in orders:
        assert order["customerId"] in customer_ids
        assert all(item["productId"] in product_ids for item in repos.orders.get_items(order["id"]))


def test_purchase_order_items_are_replaced(repos):
    po = repos.purchase_orders.create_with_items(
        {"supplierId": "s1", "status": "ordered"},
        [{"productId": "p1", "quantity": 5}, {"productId": "p2", "quantity": 3}],
    )
    keep = next(i for i in repos.purchase_orders.get_items(po["id"]) if i["productId"] == "p1")

    repos.purchase_orders.update_items(po["id"], [{**keep, "quantity": 6}, {"productId": "p3", "quantity": 1}])

    items = {i["productId"]: i for i in repos.purchase_orders.get_items(po["id"])}
    assert set(items) == {"p1", "p3"}
    assert items["p1"]["quantity"] == 6
    assert items["p1"]["id"] == keep["id"]

    with pytest.raises(RecordNotFoundError):
        repos.purchase_orders.update_items("missing", [])


def test_receiving_purchase_order_adds_stock_once(repos):
    product = repos.products.create({"name": "Widget", "stock": 2})
    po = repos.purchase_orders.create_with_items(
        {"supplierId": "s1", "status": "ordered"}, [{"productId": product["id"], "quantity": 5}]
    )

    received = repos.purchase_orders.receive(po["id"])
    assert received["status"] == "received"
    assert received["receivedDate"]
    assert repos.products.get_by_id(product["id"])["stock"] == 7

    repos.purchase_orders.receive(po["id"])
    assert repos.products.get_by_id(product["id"])["stock"] == 7


def test_receiving_counts_explicit_zero_as_nothing_arrived(repos):
    product = repos.products.create({"name": "Widget", "stock": 10})
    other = repos.products.create({"name": "Gadget", "stock": 1})
    po = repos.purchase_orders.create_with_items(
        {"supplierId": "s1", "status": "ordered"},
        [
            {"productId": product["id"], "quantity": 5, "receivedQuantity": 0},
            {"productId": other["id"], "quantity": 5, "receivedQuantity": 3},
        ],
    )

    repos.purchase_orders.receive(po["id"])

    assert repos.products.get_by_id(product["id"])["stock"] == 10
    assert repos.products.get_by_id(other["id"])["stock"] == 4


@pytest.fixture
def stocked(repos):
    source = repos.warehouses.create({"name": "Main"})
    dest = repos.warehouses.create({"name": "Outlet"})
    repos.warehouses.set_stock(source["id"], "p1", 10)
    return source["id"], dest["id"]


def test_transfer_reserves_then_moves_stock(repos, stocked):
    source, dest = stocked
    transfer = repos.transfers.create_with_items(
        {"fromWarehouseId": source, "toWarehouseId": dest}, [{"productId": "p1", "quantity": 4}]
    )
    assert transfer["status"] == "pending"
    assert transfer["referenceNumber"].startswith("TRF-")
    assert repos.warehouses.get_stock(source, "p1")["reservedQuantity"] == 4

    repos.transfers.ship(transfer["id"])
    done = repos.transfers.complete(transfer["id"])

    assert done["status"] == "completed"
    assert done["items"][0]["receivedQuantity"] == 4
    src = repos.warehouses.get_stock(source, "p1")
    assert (src["quantity"], src["reservedQuantity"]) == (6, 0)
    assert repos.warehouses.get_stock(dest, "p1")["quantity"] == 4


def test_transfer_rejects_insufficient_available_stock(repos, stocked):
    source, dest = stocked
    repos.transfers.create_with_items(
        {"fromWarehouseId": source, "toWarehouseId": dest}, [{"productId": "p1", "quantity": 8}]
    )
    with pytest.raises(InventoryError):
        repos.transfers.create_with_items(
            {"fromWarehouseId": source, "toWarehouseId": dest}, [{"productId": "p1", "quantity": 3}]
        )
    with pytest.raises(InventoryError):
        repos.transfers.create_with_items(
            {"fromWarehouseId": source, "toWarehouseId": source}, [{"productId": "p1", "quantity": 1}]
        )


def test_cancel_releases_reservation_and_blocks_completion(repos, stocked):
    source, dest = stocked
    transfer = repos.transfers.create_with_items(
        {"fromWarehouseId": source, "toWarehouseId": dest}, [{"productId": "p1", "quantity": 4}]
    )
    repos.transfers.cancel(transfer["id"])

    assert repos.warehouses.get_stock(source, "p1")["reservedQuantity"] == 0
    with pytest.raises(InventoryError):
        repos.transfers.complete(transfer["id"])


def test_warehouse_with_inventory_cannot_be_deleted(repos, stocked):
    source, dest = stocked
    with pytest.raises(InventoryError):
        repos.warehouses.delete(source)
    assert repos.warehouses.delete(dest) is True


def test_transfer_lookup_includes_items(repos, stocked):
    source, dest = stocked
    transfer = repos.transfers.create_with_items(
        {"fromWarehouseId": source, "toWarehouseId": dest}, [{"productId": "p1", "quantity": 2}]
    )
    loaded = repos.transfers.get_with_items(transfer["id"])
    assert loaded["items"][0]["transferId"] == transfer["id"]
    assert [entry["productId"] for entry in repos.warehouses.get_inventory(source)] == ["p1"]
