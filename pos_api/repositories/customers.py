from __future__ import annotations

from .base import HashRepository

_SEED = (
    ("John Doe", "john.doe@example.com", "555-123-4567", "123 Main St, Anytown, USA",
     "2023-01-15", 1245.67, "2023-05-10", 450, "Prefers email communication"),
    ("Jane Smith", "jane.smith@example.com", "555-234-5678", "456 Oak Ave, Somewhere, USA",
     "2023-02-20", 876.54, "2023-05-12", 320, ""),
    ("Robert Johnson", "robert.johnson@example.com", "555-345-6789", "789 Pine Rd, Elsewhere, USA",
     "2023-03-05", 2345.89, "2023-05-08", 780, "VIP customer"),
    ("Emily Brown", "emily.brown@example.com", "555-456-7890", "101 Cedar Ln, Nowhere, USA",
     "2023-03-15", 567.32, "2023-04-30", 180, ""),
    ("Michael Wilson", "michael.wilson@example.com", "555-567-8901", "202 Maple Dr, Anywhere, USA",
     "2023-04-01", 1678.45, "2023-05-15", 520, "Allergic to latex"),
)


class CustomerRepository(HashRepository):
    bucket = "customers"
    revalidate_paths = ("/dashboard/customers",)

    def seed_records(self):
        for name, email, phone, address, joined, spent, last_purchase, points, notes in _SEED:
            yield {
                "name": name,
                "email": email,
                "phone": phone,
                "address": address,
                "businessId": "default",
                "joinDate": joined,
                "totalSpent": spent,
                "lastPurchase": last_purchase,
                "loyaltyPoints": points,
                "notes": notes,
            }
