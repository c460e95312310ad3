"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A pending order was recorded for a new checkout session."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    customer_id = String(required=True)
    cart_id = Identifier(required=True)
    seller_count = Integer(required=True)
    total = Float(required=True)
    session_id = String()
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaid:
    """The gateway confirmed payment for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    payment_intent_id = String()
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """The order will never be paid: its session expired or the payment failed."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class StockShortfallRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    shortfall_count = Integer(required=True)


@marketplace.event(part_of="Order")
class OrderFulfilled:
    """Every post-payment step for the order has run."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    fulfilled_at = DateTime(required=True)
