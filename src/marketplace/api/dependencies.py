"""Service wiring for the HTTP layer.

Each request builds its services from the adapter registries, so tests
and deployments swap collaborators with the ``set_*()`` functions.
"""

from fastapi import Header
from protean.utils.globals import current_domain

from marketplace.catalogue import get_catalogue, get_seller_directory
from marketplace.checkout.orchestrator import Actor, CheckoutOrchestrator
from marketplace.checkout.validation import CartValidator
from marketplace.config import get_settings
from marketplace.fanout.broker import get_broker
from marketplace.fanout.channel import get_email, get_realtime
from marketplace.fanout.notifier import EmailNotifier
from marketplace.fanout.publisher import EventFanout
from marketplace.inventory.ledger import InventoryLedger
from marketplace.payments.gateway import get_gateway
from marketplace.payments.webhook import PaymentWebhookProcessor


def get_actor(
    x_customer_id: str | None = Header(default=None),
    x_customer_email: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
) -> Actor:
    """The caller, as established upstream by the identity service."""
    return Actor(customer_id=x_customer_id, email=x_customer_email, session_id=x_session_id)


def get_validator() -> CartValidator:
    return CartValidator(current_domain, get_catalogue())


def get_orchestrator() -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        current_domain,
        get_validator(),
        get_gateway(),
        get_seller_directory(),
        settings=get_settings(),
    )


def get_fanout() -> EventFanout:
    settings = get_settings()
    notifier = EmailNotifier(get_email(), get_seller_directory(), settings)
    return EventFanout(get_broker(), get_realtime(), notifier)


def get_ledger() -> InventoryLedger:
    return InventoryLedger(current_domain, publish=get_fanout().publish, settings=get_settings())


def get_webhook_processor() -> PaymentWebhookProcessor:
    settings = get_settings()
    fanout = get_fanout()
    return PaymentWebhookProcessor(
        current_domain,
        ledger=InventoryLedger(current_domain, publish=fanout.publish, settings=settings),
        fanout=fanout,
        gateway=get_gateway(),
        notifier=EmailNotifier(get_email(), get_seller_directory(), settings),
    )
