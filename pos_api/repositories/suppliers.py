from __future__ import annotations

from .base import HashRepository


class SupplierRepository(HashRepository):
    bucket = "suppliers"
    revalidate_paths = ("/dashboard/suppliers",)

    def active(self) -> list[dict]:
        return self.find(lambda s: s.get("isActive", True))

    def seed_records(self):
        rows = [
            ("Global Electronics Supplier", "John Smith", "john@globalelectronics.com", "555-123-4567",
             "123 Tech Blvd, Silicon Valley, CA", "Net 30", "Preferred supplier for all electronics"),
            ("Fashion Wholesale Inc.", "Emma Johnson", "emma@fashionwholesale.com", "555-234-5678",
             "456 Fashion Ave, New York, NY", "Net 45", "Clothing and accessories supplier"),
            ("Fresh Foods Distributors", "Michael Brown", "michael@freshfoods.com", "555-345-6789",
             "789 Produce Lane, Chicago, IL", "Net 15", "Perishable goods supplier"),
            ("Office Supplies Co.", "Sarah Wilson", "sarah@officesupplies.com", "555-456-7890",
             "101 Business Park, Boston, MA", "Net 30", "Office supplies and equipment"),
            ("Furniture Makers Ltd.", "David Lee", "david@furnituremakers.com", "555-567-8901",
             "202 Woodwork St, Portland, OR", "Net 60", "Custom furniture manufacturer"),
        ]
        return [
            {
                "name": name,
                "contactName": contact,
                "email": email,
                "phone": phone,
                "address": address,
                "businessId": "default",
                "paymentTerms": terms,
                "notes": notes,
                "isActive": True,
            }
            for name, contact, email, phone, address, terms, notes in rows
        ]
