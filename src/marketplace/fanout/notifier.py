"""Email notifications for customers and sellers.

Sending is best effort: a failed send is logged and never raised, so a
mail outage cannot undo or stall the payment and inventory work that
triggered it.
"""

import structlog

from marketplace.catalogue.port import SellerDirectory
from marketplace.config import Settings, get_settings
from marketplace.fanout.channel.email_port import EmailPort
from marketplace.fanout.events import InventoryLow
from marketplace.fanout.templates import get_template

logger = structlog.get_logger(__name__)


class EmailNotifier:
    def __init__(self, email: EmailPort, sellers: SellerDirectory, settings: Settings | None = None) -> None:
        self._email = email
        self._sellers = sellers
        self._settings = settings or get_settings()

    def _send(self, to: str, template_name: str, context: dict) -> bool:
        content = get_template(template_name).render(context)
        result = self._email.send(to=to, subject=content["subject"], body=content["body"])
        if result.get("status") != "sent":
            logger.error("Email delivery failed", template=template_name, to=to, error=result.get("error"))
            return False

        logger.info("Email sent", template=template_name, to=to, message_id=result.get("message_id"))
        return True

    def order_confirmation(self, order, to: str | None = None) -> bool:
        to = to or order.customer_email
        if not to:
            return False

        return self._send(
            to,
            "order-confirmation",
            {
                "order_reference": order.reference,
                "total": order.total,
                "currency": order.currency,
                "items": [
                    {"name": item.name, "quantity": item.quantity, "line_total": item.line_total}
                    for item in order.items
                ],
            },
        )

    def low_stock_alert(self, event: InventoryLow) -> bool:
        contact = self._sellers.contact_email(event.seller_id)
        if not contact:
            return False

        return self._send(
            contact,
            "low-inventory-alert",
            {
                "store_name": self._sellers.store_name(event.seller_id),
                "product_name": event.product_name,
                "current_stock": event.quantity,
                "threshold": event.threshold,
                "dashboard_url": f"{self._settings.vendor_dashboard_url}/dashboard/products/{event.product_id}",
            },
        )
