from __future__ import annotations

from .base import HashRepository


class CategoryRepository(HashRepository):
    bucket = "categories"
    revalidate_paths = ("/dashboard/products",)

    def seed_records(self):
        return [
            {"name": "Clothing", "description": "Apparel and clothing items", "businessId": "default"},
            {"name": "Footwear", "description": "Shoes and footwear items", "businessId": "default"},
            {"name": "Accessories", "description": "Bags, watches, and other accessories", "businessId": "default"},
            {"name": "Electronics", "description": "Electronic devices and gadgets", "businessId": "default"},
        ]

    def ids_by_name(self) -> dict[str, str]:
        return {str(c.get("name", "")).lower(): c["id"] for c in self.get_all() if c.get("id")}
