from __future__ import annotations

import logging
from typing import Optional

from .base import HashRepository, Record, absorbs
from .categories import CategoryRepository

logger = logging.getLogger(__name__)

_PLACEHOLDER_IMAGE = "/placeholder.svg?height=100&width=100"

# name, description, price, cost, sku, barcode, category, stock, low stock threshold
_SEED_CATALOG = (
    ("T-Shirt", "Comfortable cotton t-shirt", 19.99, 8.5, "TS-001", "1234567890123", "clothing", 45, 10),
    ("Jeans", "Classic blue jeans", 49.99, 22.5, "JN-001", "2345678901234", "clothing", 32, 5),
    ("Sneakers", "Comfortable athletic shoes", 79.99, 35.0, "SN-001", "3456789012345", "footwear", 18, 5),
    ("Backpack", "Durable backpack for everyday use", 39.99, 18.25, "BP-001", "4567890123456", "accessories", 24, 8),
    ("Watch", "Elegant wristwatch", 129.99, 65.0, "WT-001", "5678901234567", "accessories", 12, 3),
    ("Headphones", "Wireless over-ear headphones", 89.99, 42.5, "HP-001", "6789012345678", "electronics", 15, 5),
    ("Smartphone", "Latest model smartphone", 599.99, 350.0, "SP-001", "7890123456789", "electronics", 8, 2),
    ("Laptop", "High-performance laptop", 999.99, 650.0, "LP-001", "8901234567890", "electronics", 5, 2),
)


class ProductRepository(HashRepository):
    bucket = "products"
    revalidate_paths = ("/dashboard/products", "/api/v1/products")

    def __init__(self, store, revalidator=None, *, clock=None, categories: CategoryRepository | None = None) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.categories = categories

    def seed_records(self):
        category_ids = self.categories.ids_by_name() if self.categories else {}
        for name, description, price, cost, sku, barcode, category, stock, threshold in _SEED_CATALOG:
            yield {
                "name": name,
                "description": description,
                "price": price,
                "cost": cost,
                "sku": sku,
                "barcode": barcode,
                "categoryId": category_ids.get(category, category),
                "stock": stock,
                "lowStockThreshold": threshold,
                "image": _PLACEHOLDER_IMAGE,
                "isActive": True,
            }

    def normalize_new(self, data: Record) -> Record:
        """Defaults applied to products created through the public API."""
        return {
            "name": data.get("name"),
            "description": data.get("description") or "",
            "price": data.get("price"),
            "cost": data.get("cost") or 0,
            "sku": data.get("sku") or "",
            "barcode": data.get("barcode") or "",
            "categoryId": data.get("categoryId"),
            "stock": data.get("stock") or 0,
            "lowStockThreshold": data.get("lowStockThreshold") or 0,
            "image": data.get("image") or _PLACEHOLDER_IMAGE,
            "isActive": data.get("isActive", True),
        }

    def search(
        self,
        *,
        category: str | None = None,
        active: bool | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        products = self.get_all()
        if category:
            products = [p for p in products if p.get("categoryId") == category]
        if active is not None:
            products = [p for p in products if bool(p.get("isActive")) is active]
        products.sort(key=lambda p: (p.get("createdAt") or "", p.get("id") or ""))
        if limit and limit > 0:
            products = products[:limit]
        return products

    def low_stock(self) -> list[Record]:
        return self.find(lambda p: (p.get("stock") or 0) <= (p.get("lowStockThreshold") or 0))

    @absorbs(None)
    def adjust_stock(self, product_id: str, delta: int | float) -> Optional[Record]:
        """Add ``delta`` to the product's stock (read-merge-write, not atomic)."""
        product = self._load(product_id)
        current = (product or {}).get("stock") or 0
        updated = self._apply_update(product_id, {"stock": current + delta})
        logger.debug("Stock for %s: %s -> %s", product_id, current, updated["stock"])
        return self.present(updated)
