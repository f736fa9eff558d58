from __future__ import annotations

from .base import DocumentRepository, absorbs
from .customers import CustomerRepository
from .products import ProductRepository

# customer email, order fields, [(product sku, quantity, price)]
_SEED_ORDERS = (
    ("john.doe@example.com", {"status": "completed", "paymentMethod": "credit_card", "subtotal": 139.97, "tax": 10.0,
                              "total": 149.97}, [("TS-001", 2, 19.99), ("JN-001", 1, 49.99), ("BP-001", 1, 39.99)]),
    ("jane.smith@example.com", {"status": "completed", "paymentMethod": "cash", "subtotal": 89.99, "tax": 0,
                                "total": 89.99}, [("HP-001", 1, 89.99)]),
    ("robert.johnson@example.com", {"status": "completed", "paymentMethod": "credit_card", "subtotal": 129.99,
                                    "tax": 0, "total": 129.99}, [("WT-001", 1, 129.99)]),
    ("emily.brown@example.com", {"status": "pending", "paymentMethod": "credit_card", "subtotal": 79.99, "tax": 0,
                                 "total": 79.99}, [("SN-001", 1, 79.99)]),
)


class OrderRepository(DocumentRepository):
    bucket = "orders"
    items_bucket = "order_items"
    parent_field = "orderId"
    number_field = "orderNumber"
    number_prefix = "ORD"
    revalidate_paths = ("/dashboard/orders",)

    def __init__(
        self,
        store,
        revalidator=None,
        *,
        clock=None,
        customers: CustomerRepository | None = None,
        products: ProductRepository | None = None,
    ) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.customers = customers
        self.products = products

    @absorbs(False)
    def seed_if_empty(self) -> bool:
        if self.count() > 0:
            return False
        customer_ids = {c.get("email"): c["id"] for c in (self.customers.get_all() if self.customers else [])}
        product_ids = {p.get("sku"): p["id"] for p in (self.products.get_all() if self.products else [])}
        for email, header, lines in _SEED_ORDERS:
            order = {
                "customerId": customer_ids.get(email, ""),
                "userId": "user-123",
                "businessId": "default",
                "discount": 0,
                "notes": "",
                **header,
            }
            items = [
                {
                    "productId": product_ids.get(sku, sku),
                    "quantity": quantity,
                    "price": price,
                    "discount": 0,
                    "total": round(quantity * price, 2),
                }
                for sku, quantity, price in lines
            ]
            self.create_with_items(order, items)
        return True
