from __future__ import annotations

import logging
from typing import Iterable, Optional

from pos_api.db.errors import RecordNotFoundError

from .base import DocumentRepository, Record, absorbs
from .products import ProductRepository

logger = logging.getLogger(__name__)

STATUS_RECEIVED = "received"


class PurchaseOrderRepository(DocumentRepository):
    bucket = "purchase_orders"
    items_bucket = "purchase_order_items"
    parent_field = "purchaseOrderId"
    number_field = "poNumber"
    number_prefix = "PO"
    revalidate_paths = ("/dashboard/purchase-orders",)

    def __init__(self, store, revalidator=None, *, clock=None, products: ProductRepository | None = None) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.products = products

    @absorbs(False)
    def update_items(self, purchase_order_id: str, items: Iterable[Record]) -> bool:
        """
        Replace the line items of a purchase order: existing items whose id is
        not in ``items`` are removed, the rest are inserted or overwritten.
        """
        if self._load(purchase_order_id) is None:
            raise RecordNotFoundError(f"purchase order '{purchase_order_id}' not found")
        items = list(items)
        key = self.items_key(purchase_order_id)
        keep = {item["id"] for item in items if item.get("id")}
        stale = [existing["id"] for existing in self.get_items(purchase_order_id) if existing["id"] not in keep]
        if stale:
            self.store.hdel(key, *stale)
        for item in items:
            self._write_item(purchase_order_id, item)
        self.revalidate()
        return True

    @absorbs(None)
    def receive(self, purchase_order_id: str, received_date: str | None = None) -> Optional[Record]:
        """Mark the order received and add the received quantities to product stock."""
        existing = self._load(purchase_order_id)
        if existing is None:
            raise RecordNotFoundError(f"purchase order '{purchase_order_id}' not found")
        if existing.get("status") == STATUS_RECEIVED:
            logger.warning("Purchase order %s already received", purchase_order_id)
            return existing
        updated = self._apply_update(
            purchase_order_id,
            {"status": STATUS_RECEIVED, "receivedDate": received_date or self.now()},
        )
        for item in self.get_items(purchase_order_id):
            quantity = item.get("receivedQuantity")
            if quantity is None:
                quantity = item.get("quantity") or 0
            if not (self.products and item.get("productId") and quantity):
                continue
            try:
                self.products.adjust_stock(item["productId"], quantity)
            except RecordNotFoundError:
                logger.warning("Received unknown product %s on %s", item["productId"], purchase_order_id)
        return updated
