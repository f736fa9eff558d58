"""
Warehouses, per-warehouse stock and inter-warehouse transfers.

Stock for a warehouse lives in ``warehouse_inventory:{warehouseId}`` keyed by
product id. A transfer reserves stock at the source when it is created, and
moves it to the destination when it is completed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from pos_api.db.errors import RecordNotFoundError, StoreError

from .base import DocumentRepository, HashRepository, Record, absorbs, decode_record, encode_record

logger = logging.getLogger(__name__)

INVENTORY_BUCKET = "warehouse_inventory"

TRANSFER_PENDING = "pending"
TRANSFER_IN_TRANSIT = "in_transit"
TRANSFER_COMPLETED = "completed"
TRANSFER_CANCELLED = "cancelled"


class InventoryError(StoreError):
    code = "inventory_conflict"
    status_code = 409


class WarehouseRepository(HashRepository):
    bucket = "warehouses"
    revalidate_paths = ("/dashboard/warehouses",)

    def inventory_key(self, warehouse_id: str) -> str:
        return f"{INVENTORY_BUCKET}:{warehouse_id}"

    @absorbs(list)
    def get_inventory(self, warehouse_id: str) -> list[Record]:
        key = self.inventory_key(warehouse_id)
        return [decode_record(raw, f"{key}/{pid}") for pid, raw in self.store.hgetall(key).items()]

    @absorbs(None)
    def get_stock(self, warehouse_id: str, product_id: str) -> Optional[Record]:
        raw = self.store.hget(self.inventory_key(warehouse_id), product_id)
        return decode_record(raw, self.inventory_key(warehouse_id)) if raw is not None else None

    def _put_stock(self, warehouse_id: str, product_id: str, quantity, reserved) -> Record:
        entry = {
            "warehouseId": warehouse_id,
            "productId": product_id,
            "quantity": quantity,
            "reservedQuantity": reserved,
            "lastUpdated": self.now(),
        }
        self.store.hset(self.inventory_key(warehouse_id), product_id, encode_record(entry))
        self.revalidate(f"/dashboard/warehouses/{warehouse_id}", f"/dashboard/products/{product_id}")
        return entry

    @absorbs(None)
    def set_stock(self, warehouse_id: str, product_id: str, quantity, reserved_delta=0) -> Record:
        """Set the on-hand quantity; ``reserved_delta`` is added to the current reservation."""
        current = self.get_stock(warehouse_id, product_id) or {}
        return self._put_stock(warehouse_id, product_id, quantity, (current.get("reservedQuantity") or 0) + reserved_delta)

    @absorbs(None)
    def adjust_stock(self, warehouse_id: str, product_id: str, quantity_delta=0, reserved_delta=0) -> Record:
        current = self.get_stock(warehouse_id, product_id) or {}
        return self._put_stock(
            warehouse_id,
            product_id,
            (current.get("quantity") or 0) + quantity_delta,
            (current.get("reservedQuantity") or 0) + reserved_delta,
        )

    @absorbs(False)
    def delete(self, record_id: str) -> bool:
        if self._load(record_id) is None:
            raise RecordNotFoundError(f"warehouse '{record_id}' not found")
        if self.store.hlen(self.inventory_key(record_id)) > 0:
            raise InventoryError("Cannot delete warehouse with existing inventory")
        self._remove(record_id)
        return True


class InventoryTransferRepository(DocumentRepository):
    bucket = "inventory_transfers"
    items_bucket = "inventory_transfer_items"
    parent_field = "transferId"
    number_field = "referenceNumber"
    number_prefix = "TRF"
    revalidate_paths = ("/dashboard/inventory/transfers",)

    def __init__(self, store, revalidator=None, *, clock=None, warehouses: WarehouseRepository | None = None) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.warehouses = warehouses or WarehouseRepository(store, revalidator, clock=clock)

    @absorbs(None)
    def create_with_items(self, data: Record, items: Iterable[Record] = ()) -> Record:
        """Validate available stock at the source, record the transfer and reserve its quantities."""
        items = list(items)
        source = data.get("fromWarehouseId")
        if not source or not data.get("toWarehouseId"):
            raise InventoryError("Transfer needs a source and a destination warehouse")
        if source == data.get("toWarehouseId"):
            raise InventoryError("Source and destination warehouses must differ")
        stock = {entry.get("productId"): entry for entry in self.warehouses.get_inventory(source)}
        for item in items:
            entry = stock.get(item.get("productId")) or {}
            available = (entry.get("quantity") or 0) - (entry.get("reservedQuantity") or 0)
            if available < (item.get("quantity") or 0):
                raise InventoryError(f"Insufficient inventory for product {item.get('productId')} in source warehouse")

        header = {"status": TRANSFER_PENDING, **data}
        transfer = self._insert_document(
            header, [{"productId": i["productId"], "quantity": i["quantity"], "receivedQuantity": 0} for i in items]
        )
        for item in items:
            self.warehouses.adjust_stock(source, item["productId"], 0, item["quantity"])
        return self.with_items(transfer)

    def get_with_items(self, transfer_id: str) -> Optional[Record]:
        return self.with_items(self.get_by_id(transfer_id))

    def _transition(self, transfer_id: str, allowed: tuple[str, ...], status: str) -> Record:
        transfer = self._load(transfer_id)
        if transfer is None:
            raise RecordNotFoundError(f"transfer '{transfer_id}' not found")
        if transfer.get("status") not in allowed:
            raise InventoryError(f"Transfer is {transfer.get('status')}; expected one of {', '.join(allowed)}")
        return self._apply_update(transfer_id, {"status": status})

    @absorbs(None)
    def ship(self, transfer_id: str) -> Record:
        return self.with_items(self._transition(transfer_id, (TRANSFER_PENDING,), TRANSFER_IN_TRANSIT))

    @absorbs(None)
    def complete(self, transfer_id: str, received: dict[str, int] | None = None) -> Record:
        """
        Close an in-transit transfer: the source loses the shipped quantity and
        its reservation, the destination gains what was received (by default
        everything shipped).
        """
        transfer = self._transition(transfer_id, (TRANSFER_IN_TRANSIT,), TRANSFER_COMPLETED)
        received = received or {}
        for item in self.get_items(transfer_id):
            product_id, shipped = item["productId"], item.get("quantity") or 0
            arrived = received.get(product_id, shipped)
            self.warehouses.adjust_stock(transfer["fromWarehouseId"], product_id, -shipped, -shipped)
            self.warehouses.adjust_stock(transfer["toWarehouseId"], product_id, arrived, 0)
            self._write_item(transfer_id, {**item, "receivedQuantity": arrived})
        return self.with_items(transfer)

    @absorbs(None)
    def cancel(self, transfer_id: str) -> Record:
        transfer = self._transition(transfer_id, (TRANSFER_PENDING, TRANSFER_IN_TRANSIT), TRANSFER_CANCELLED)
        for item in self.get_items(transfer_id):
            self.warehouses.adjust_stock(transfer["fromWarehouseId"], item["productId"], 0, -(item.get("quantity") or 0))
        return self.with_items(transfer)
