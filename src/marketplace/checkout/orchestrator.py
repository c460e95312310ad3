"""Checkout orchestration: from a validated cart to a pending order.

The steps, in order:
    1. Load the cart and check the caller owns it.
    2. Validate the cart; stop with the itemized reason on failure.
    3. Group lines by seller. Every seller needs a payout account; a
       multi-seller cart is all-or-nothing.
    4. Generate the order reference that correlates every later step.
    5. Translate lines and coupon into gateway terms, compute the platform
       fee and each seller's share.
    6. Open the gateway payment session.
    7. Persist the PENDING order, anchored to the session, before replying.

Nothing is persisted unless the gateway call succeeds, so a failed checkout
never leaves an order pointing at a session that does not exist.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError

from marketplace.cart.cart import CartStatus, ShoppingCart
from marketplace.catalogue.port import SellerDirectory
from marketplace.checkout.settlement import group_by_seller, platform_fee, split_payment
from marketplace.checkout.validation import CartValidator
from marketplace.config import Settings, get_settings
from marketplace.errors import (
    CartAccessDenied,
    CartNotFound,
    CheckoutValidationError,
    OrderAccessDenied,
    OrderNotFound,
    SellersNotOnboarded,
)
from marketplace.order.order import GUEST_CUSTOMER, Order, PaymentMetadata, SettlementMode, generate_order_reference
from marketplace.payments.gateway.port import (
    CheckoutSessionRequest,
    GatewayDiscount,
    GatewayLineItem,
    PaymentGateway,
    SellerSplit,
)
from marketplace.shared.money import to_minor_units

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who is checking out: a signed-in customer or a guest session."""

    customer_id: str | None = None
    email: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class CheckoutSessionCreated:
    session_id: str
    order_reference: str
    url: str | None


@dataclass(frozen=True)
class CheckoutStatus:
    status: str | None
    payment_status: str | None
    order_reference: str
    order_status: str
    order_payment_status: str


def _with_query(url: str, **params) -> str:
    # Gateway placeholders such as {CHECKOUT_SESSION_ID} must stay unescaped
    query = "&".join(f"{key}={value}" for key, value in params.items())
    return f"{url}{'&' if '?' in url else '?'}{query}"


class CheckoutOrchestrator:
    def __init__(
        self,
        domain,
        validator: CartValidator,
        gateway: PaymentGateway,
        sellers: SellerDirectory,
        settings: Settings | None = None,
    ) -> None:
        self._domain = domain
        self._validator = validator
        self._gateway = gateway
        self._sellers = sellers
        self._settings = settings or get_settings()

    # -------------------------------------------------------------------
    # Loading and guards
    # -------------------------------------------------------------------
    def _load_cart(self, cart_id: str, actor: Actor) -> ShoppingCart:
        try:
            cart = self._domain.repository_for(ShoppingCart).get(cart_id)
        except ObjectNotFoundError as exc:
            raise CartNotFound(f"Cart {cart_id} not found") from exc

        if cart.customer_id:
            if str(cart.customer_id) != str(actor.customer_id):
                raise CartAccessDenied("This cart belongs to another customer")
        elif cart.session_id and cart.session_id != actor.session_id:
            raise CartAccessDenied("This cart belongs to another session")

        if CartStatus(cart.status) == CartStatus.ACTIVE and cart.is_expired():
            raise CartNotFound(f"Cart {cart_id} has expired")
        return cart

    def _require_destinations(self, groups) -> dict[str, str]:
        destinations = {}
        blocking = []
        for group in groups:
            account = self._sellers.payout_account(group.seller_id)
            if account:
                destinations[group.seller_id] = account
            else:
                blocking.append({"sellerId": group.seller_id, "storeName": self._sellers.store_name(group.seller_id)})

        if blocking:
            logger.warning("Checkout blocked by sellers without payout accounts", sellers=blocking)
            raise SellersNotOnboarded(blocking)
        return destinations

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def create_checkout_session(
        self,
        cart_id: str,
        success_url: str,
        cancel_url: str,
        actor: Actor,
    ) -> CheckoutSessionCreated:
        cart = self._load_cart(cart_id, actor)

        result = self._validator.validate(cart)
        if not result.valid:
            logger.info("Checkout rejected by cart validation", cart_id=cart_id, reason=result.reason.value)
            raise CheckoutValidationError(result.reason.value, result.message, result.detail or None)

        groups = group_by_seller(cart.lines)
        destinations = self._require_destinations(groups)

        reference = generate_order_reference()
        log = logger.bind(cart_id=cart_id, order_reference=reference)
        currency = self._settings.currency
        customer_id = str(cart.customer_id) if cart.customer_id else GUEST_CUSTOMER

        discount_id = None
        if cart.coupon:
            discount_id = self._gateway.get_or_create_discount(
                GatewayDiscount.for_coupon(cart.coupon, cart.discount, currency)
            )

        shares = split_payment(groups, destinations, cart.total, self._settings.platform_fee_percentage)
        fee_amount = platform_fee(cart.total, self._settings.platform_fee_percentage)
        expires_at = datetime.now(UTC) + timedelta(minutes=self._settings.checkout_session_ttl_minutes)

        request = CheckoutSessionRequest(
            order_reference=reference,
            cart_id=str(cart.id),
            customer_id=customer_id,
            customer_email=actor.email,
            line_items=tuple(
                GatewayLineItem(name=line.name, unit_amount=to_minor_units(line.unit_price), quantity=line.quantity)
                for line in cart.lines
            ),
            currency=currency,
            success_url=_with_query(success_url, session_id="{CHECKOUT_SESSION_ID}", order_ref=reference),
            cancel_url=cancel_url,
            expires_at=expires_at,
            application_fee_amount=fee_amount,
            splits=tuple(
                SellerSplit(seller_id=share.seller_id, destination=share.destination, amount=share.net_amount)
                for share in shares
            ),
            discount_id=discount_id,
        )

        # GatewayError propagates: nothing has been persisted yet
        session = self._gateway.create_checkout_session(request)
        log.info("Gateway checkout session created", session_id=session.session_id, sellers=len(groups))

        order = Order.place(
            reference=reference,
            cart_id=str(cart.id),
            customer_id=cart.customer_id,
            customer_email=actor.email,
            coupon_code=cart.coupon.code if cart.coupon else None,
            currency=currency,
            items_data=[
                {
                    "product_id": str(line.product_id),
                    "variant_id": str(line.variant_id) if line.variant_id else None,
                    "seller_id": str(line.seller_id),
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "line_total": line.line_total,
                }
                for line in cart.lines
            ],
            pricing={
                "subtotal": cart.subtotal,
                "discount": cart.discount,
                "tax": cart.tax,
                "shipping": cart.shipping,
                "total": cart.total,
                "platform_fee": fee_amount / 100,
            },
            session_id=session.session_id,
            payment=PaymentMetadata(
                session_url=session.url,
                session_expires_at=session.expires_at or expires_at,
                settlement_mode=(
                    SettlementMode.DESTINATION_CHARGE.value
                    if request.is_single_seller
                    else SettlementMode.SEPARATE_TRANSFERS.value
                ),
            ),
            settlements=[share.to_settlement() for share in shares],
        )
        self._domain.repository_for(Order).add(order)
        log.info("Pending order recorded", order_id=str(order.id), total=order.total)

        return CheckoutSessionCreated(session_id=session.session_id, order_reference=reference, url=session.url)

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------
    def get_status(self, session_id: str, actor: Actor) -> CheckoutStatus:
        order = self._domain.repository_for(Order).find_by_session_id(session_id)
        if order is None:
            raise OrderNotFound(f"No order for checkout session {session_id}")

        if order.customer_id != GUEST_CUSTOMER and order.customer_id != str(actor.customer_id):
            raise OrderAccessDenied("This order belongs to another customer")

        session = self._gateway.retrieve_session(session_id)
        return CheckoutStatus(
            status=session.status,
            payment_status=session.payment_status,
            order_reference=order.reference,
            order_status=order.status,
            order_payment_status=order.payment_status,
        )
