"""Typed fan-out events.

Each event knows its broker topic, the realtime message type the vendor
dashboard expects, and the seller it concerns. ``payload()`` is the JSON
body sent on both paths; the fallback delivers it unchanged.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

INVENTORY_UPDATED = "inventory-updated"
INVENTORY_LOW = "inventory-low"
ORDER_CREATED = "order-created"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class InventoryUpdated:
    seller_id: str
    product_id: str
    quantity: int
    previous_quantity: int
    reason: str
    variant_id: str | None = None
    order_reference: str | None = None
    timestamp: datetime = field(default_factory=_now)

    topic = INVENTORY_UPDATED
    message_type = "inventory_update"

    def payload(self) -> dict:
        return {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "vendorId": self.seller_id,
            "quantity": self.quantity,
            "previousQuantity": self.previous_quantity,
            "reason": self.reason,
            "orderReference": self.order_reference,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class InventoryLow:
    seller_id: str
    product_id: str
    product_name: str
    quantity: int
    threshold: int
    variant_id: str | None = None
    timestamp: datetime = field(default_factory=_now)

    topic = INVENTORY_LOW
    message_type = "low_inventory"

    def payload(self) -> dict:
        return {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "vendorId": self.seller_id,
            "name": self.product_name,
            "quantity": self.quantity,
            "lowStockThreshold": self.threshold,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class OrderCreated:
    seller_id: str
    order_reference: str
    customer_id: str
    items: tuple[dict, ...]
    total: float
    status: str
    timestamp: datetime = field(default_factory=_now)

    topic = ORDER_CREATED
    message_type = "new_order"

    def payload(self) -> dict:
        return {
            "orderReference": self.order_reference,
            "vendorId": self.seller_id,
            "userId": self.customer_id,
            "orderItems": list(self.items),
            "totalAmount": self.total,
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
        }


FanoutEvent = InventoryUpdated | InventoryLow | OrderCreated
