"""Order aggregate: the record of a checkout, possibly spanning several sellers.

An Order is created PENDING when the checkout session is requested, before
the customer pays. Its reference is the correlation key for every gateway
event and every inventory movement the order causes.

State Machine:
    PENDING → PROCESSING (payment PAID)
    PENDING → CANCELLED (payment FAILED: session expired or payment failed)

A paid order is fulfilled once the cart is consumed, the coupon counted,
stock taken, sellers paid and notified. Until ``fulfilled_at`` is set, a
redelivered payment event resumes that work.

Transitions only move forward. PROCESSING and CANCELLED accept no further
transition; fulfillment statuses beyond PROCESSING belong to the vendors'
sub-orders.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.domain import marketplace
from marketplace.order.events import (
    OrderCancelled,
    OrderFulfilled,
    OrderPaid,
    OrderPlaced,
    StockShortfallRecorded,
)
from marketplace.shared.money import order_total, round_money

GUEST_CUSTOMER = "guest"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    CANCELLED = "Cancelled"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class SubOrderStatus(Enum):
    NEW = "New"
    PROCESSING = "Processing"
    CANCELLED = "Cancelled"


class SettlementMode(Enum):
    DESTINATION_CHARGE = "Destination_Charge"
    SEPARATE_TRANSFERS = "Separate_Transfers"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: set(),  # Terminal here; fulfillment continues per sub-order
    OrderStatus.CANCELLED: set(),  # Terminal
}


_PAYMENT_FIELDS = (
    "session_url",
    "session_expires_at",
    "payment_intent_id",
    "settlement_mode",
    "paid_at",
    "expired_at",
    "failed_at",
    "failure_reason",
)


def generate_order_reference() -> str:
    """Unique, traceable order reference, e.g. ``order_3f2b9c0e4d5a6b7c``."""
    return f"order_{uuid4().hex[:16]}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class PaymentMetadata:
    """Gateway session details and payment timestamps.

    Replaced wholesale on every change, like any value object.
    """

    session_url = String(max_length=2048)
    session_expires_at = DateTime()
    payment_intent_id = String(max_length=255)
    settlement_mode = String(choices=SettlementMode)
    paid_at = DateTime()
    expired_at = DateTime()
    failed_at = DateTime()
    failure_reason = String(max_length=1000)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """Snapshot of a cart line at order time.

    Decoupled from the live catalogue: later price or name changes do not
    alter historical orders.
    """

    product_id = Identifier(required=True)
    variant_id = Identifier()
    seller_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


@marketplace.entity(part_of="Order")
class VendorSubOrder:
    """The part of an order belonging to one seller."""

    seller_id = Identifier(required=True)
    total = Float(required=True, min_value=0.0)
    item_count = Integer(required=True, min_value=1)
    status = String(choices=SubOrderStatus, default=SubOrderStatus.NEW.value)


@marketplace.entity(part_of="Order")
class SellerSettlement:
    """What one seller is owed from the payment, net of the platform fee."""

    seller_id = Identifier(required=True)
    destination = String(required=True, max_length=255)
    gross_amount = Float(required=True)
    fee_amount = Float(required=True)
    net_amount = Float(required=True)
    transfer_id = String(max_length=255)


@marketplace.entity(part_of="Order")
class StockShortfall:
    """A paid line the inventory could not cover."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)
    message = String(max_length=255)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    reference = String(required=True, max_length=50, unique=True)
    customer_id = String(required=True, max_length=255, default=GUEST_CUSTOMER)
    customer_email = String(max_length=255)
    cart_id = Identifier(required=True)
    coupon_code = String(max_length=100)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    total = Float(default=0.0)
    platform_fee = Float(default=0.0)
    currency = String(max_length=3, default="usd")
    items = HasMany(OrderItem)
    sub_orders = HasMany(VendorSubOrder)
    settlements = HasMany(SellerSettlement)
    stock_shortfalls = HasMany(StockShortfall)
    session_id = String(max_length=255)  # Gateway checkout session, indexed for status lookups
    payment = ValueObject(PaymentMetadata)
    fulfilled_at = DateTime()  # Set once every post-payment step has run
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_components(self):
        expected = order_total(self.subtotal or 0.0, self.discount or 0.0, self.tax or 0.0, self.shipping or 0.0)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Total must equal subtotal - discount + tax + shipping"]})

    @invariant.post
    def subtotal_matches_items(self):
        if not self.items:
            return
        if abs(round_money(sum(item.line_total for item in self.items)) - (self.subtotal or 0.0)) > 0.005:
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of item line totals"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        reference,
        cart_id,
        items_data,
        pricing,
        session_id,
        payment,
        settlements=(),
        customer_id=None,
        customer_email=None,
        coupon_code=None,
        currency="usd",
    ):
        """Create a pending order from a validated cart.

        Args:
            items_data: List of dicts with product_id, variant_id, seller_id,
                        name, quantity, unit_price, line_total.
            pricing: Dict with subtotal, discount, tax, shipping, total, platform_fee.
            session_id: The gateway checkout session the order is anchored to.
            payment: PaymentMetadata with the session URL, expiry and settlement mode.
            settlements: List of dicts with seller_id, destination,
                         gross_amount, fee_amount, net_amount.
        """
        now = datetime.now(UTC)

        items = [OrderItem(**item) for item in items_data]

        # One sub-order per seller, in order of first appearance
        sub_orders = {}
        for item in items:
            entry = sub_orders.setdefault(str(item.seller_id), {"total": 0.0, "item_count": 0})
            entry["total"] = round_money(entry["total"] + item.line_total)
            entry["item_count"] += 1

        order = cls(
            reference=reference,
            customer_id=str(customer_id) if customer_id else GUEST_CUSTOMER,
            customer_email=customer_email,
            cart_id=cart_id,
            coupon_code=coupon_code,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            subtotal=pricing["subtotal"],
            discount=pricing.get("discount", 0.0),
            tax=pricing.get("tax", 0.0),
            shipping=pricing.get("shipping", 0.0),
            total=pricing["total"],
            platform_fee=pricing.get("platform_fee", 0.0),
            currency=currency,
            session_id=session_id,
            payment=payment,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for item in items:
                order.add_items(item)
            for seller_id, entry in sub_orders.items():
                order.add_sub_orders(
                    VendorSubOrder(seller_id=seller_id, total=entry["total"], item_count=entry["item_count"])
                )
            for settlement in settlements:
                order.add_settlements(SellerSettlement(**settlement))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                reference=reference,
                customer_id=order.customer_id,
                cart_id=str(cart_id),
                seller_count=len(sub_orders),
                total=order.total,
                session_id=order.session_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def can_transition_to(self, target_status: OrderStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(OrderStatus(self.status), set())

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        if not self.can_transition_to(target_status):
            current = OrderStatus(self.status)
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _update_payment(self, **changes):
        current = {name: getattr(self.payment, name) for name in _PAYMENT_FIELDS} if self.payment else {}
        current.update(changes)
        self.payment = PaymentMetadata(**current)

    @property
    def is_paid(self) -> bool:
        return PaymentStatus(self.payment_status) == PaymentStatus.PAID

    @property
    def awaiting_fulfilment(self) -> bool:
        return self.is_paid and self.fulfilled_at is None

    def items_for(self, seller_id):
        return [item for item in self.items if str(item.seller_id) == str(seller_id)]

    # -------------------------------------------------------------------
    # Payment outcomes
    # -------------------------------------------------------------------
    def mark_paid(self, payment_intent_id=None, paid_at=None):
        """PENDING → PROCESSING with payment PAID."""
        self._assert_can_transition(OrderStatus.PROCESSING)
        paid_at = paid_at or datetime.now(UTC)

        with atomic_change(self):
            self.status = OrderStatus.PROCESSING.value
            self.payment_status = PaymentStatus.PAID.value
            self._update_payment(payment_intent_id=payment_intent_id, paid_at=paid_at)
            for sub_order in self.sub_orders:
                sub_order.status = SubOrderStatus.PROCESSING.value
            self.updated_at = paid_at

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                reference=self.reference,
                payment_intent_id=payment_intent_id,
                amount=self.total,
                paid_at=paid_at,
            )
        )

    def mark_expired(self, expired_at=None):
        """PENDING → CANCELLED because the checkout session lapsed unpaid."""
        self._cancel(reason="Checkout session expired", expired_at=expired_at or datetime.now(UTC))

    def mark_failed(self, reason):
        """PENDING → CANCELLED because the gateway declined the payment."""
        self._cancel(reason=reason or "Payment failed", failed_at=datetime.now(UTC))

    def _cancel(self, reason, **timestamps):
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.payment_status = PaymentStatus.FAILED.value
            self._update_payment(failure_reason=reason, **timestamps)
            for sub_order in self.sub_orders:
                sub_order.status = SubOrderStatus.CANCELLED.value
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reference=self.reference,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Settlement and reconciliation
    # -------------------------------------------------------------------
    def record_transfer(self, seller_id, transfer_id):
        settlement = next((s for s in self.settlements if str(s.seller_id) == str(seller_id)), None)
        if settlement is None:
            raise ValidationError({"seller_id": [f"No settlement for seller {seller_id}"]})
        settlement.transfer_id = transfer_id
        self.updated_at = datetime.now(UTC)

    def record_shortfalls(self, shortfalls):
        """Record paid lines the inventory could not cover.

        Args:
            shortfalls: List of dicts with product_id, variant_id, quantity, message.
        """
        recorded = {(str(s.product_id), str(s.variant_id) if s.variant_id else None) for s in self.stock_shortfalls}
        shortfalls = [s for s in shortfalls if (str(s["product_id"]), s.get("variant_id")) not in recorded]
        if not shortfalls:
            return

        for shortfall in shortfalls:
            self.add_stock_shortfalls(StockShortfall(**shortfall))
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockShortfallRecorded(
                order_id=str(self.id),
                reference=self.reference,
                shortfall_count=len(shortfalls),
            )
        )

    def mark_fulfilled(self, fulfilled_at=None):
        """Close out the post-payment work; later payment events become no-ops."""
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only a paid order can be fulfilled"]})
        if self.fulfilled_at is not None:
            return

        self.fulfilled_at = fulfilled_at or datetime.now(UTC)
        self.updated_at = self.fulfilled_at

        self.raise_(
            OrderFulfilled(
                order_id=str(self.id),
                reference=self.reference,
                fulfilled_at=self.fulfilled_at,
            )
        )
