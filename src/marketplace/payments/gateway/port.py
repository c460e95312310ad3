"""Payment gateway port (abstract interface).

Defines the contract every gateway adapter implements, so FakeGateway
(dev/test) and StripeGateway (production) are interchangeable. Amounts
crossing this boundary are integer minor units (cents).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from marketplace.shared.money import to_minor_units


@dataclass(frozen=True)
class GatewayLineItem:
    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class GatewayDiscount:
    """A coupon translated into the gateway's own discount object."""

    code: str
    kind: str  # Percentage, Fixed_Amount
    value: float
    currency: str
    capped: bool = False  # A percentage coupon whose cap applied, sent as its fixed amount

    @classmethod
    def for_coupon(cls, coupon, discount: float, currency: str) -> "GatewayDiscount":
        """The discount object that takes exactly ``discount`` off the cart.

        Gateway percentage coupons have no cap, so once a coupon's cap
        applies the cart's discount is sent as a fixed amount instead.
        """
        if coupon.kind == "Percentage" and coupon.max_discount and discount >= coupon.max_discount:
            return cls(code=coupon.code, kind="Fixed_Amount", value=discount, currency=currency, capped=True)
        return cls(code=coupon.code, kind=coupon.kind, value=coupon.value, currency=currency)

    @property
    def gateway_id(self) -> str:
        """Stable id derived from the code, so repeated checkouts reuse one object."""
        slug = "".join(ch if ch.isalnum() else "_" for ch in self.code).lower()
        if self.capped:
            return f"{slug}_{to_minor_units(self.value)}"
        return slug


@dataclass(frozen=True)
class SellerSplit:
    """The share of a payment one seller's payout account receives."""

    seller_id: str
    destination: str
    amount: int


@dataclass(frozen=True)
class CheckoutSessionRequest:
    order_reference: str
    cart_id: str
    customer_id: str
    line_items: tuple[GatewayLineItem, ...]
    currency: str
    success_url: str
    cancel_url: str
    expires_at: datetime
    application_fee_amount: int
    splits: tuple[SellerSplit, ...]
    customer_email: str | None = None
    discount_id: str | None = None

    @property
    def is_single_seller(self) -> bool:
        return len(self.splits) == 1


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str | None
    expires_at: datetime | None = None
    status: str | None = None  # open, complete, expired
    payment_status: str | None = None  # unpaid, paid, no_payment_required
    order_reference: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface.

    Adapters raise ``GatewayError`` when the gateway rejects a request or
    cannot be reached, and ``WebhookSignatureError`` when a webhook payload
    fails verification.
    """

    @abstractmethod
    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """Open a hosted payment session for an order."""
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> CheckoutSession:
        ...

    @abstractmethod
    def get_or_create_discount(self, discount: GatewayDiscount) -> str:
        """Return the gateway discount id for a coupon, creating it once."""
        ...

    @abstractmethod
    def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        transfer_group: str,
        source_transaction: str | None,
        idempotency_key: str,
    ) -> str:
        """Move a seller's share of a captured payment to their payout account."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> dict:
        """Verify a webhook payload against its signature and return the event."""
        ...
