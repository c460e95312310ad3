"""Payment webhook processing.

Gateway events arrive asynchronously, possibly twice, possibly out of
order. Each kind has exactly one handler, and every handler follows the
same rule: resolve the order by its reference, apply the transition only
if the order's state allows it, and otherwise do nothing. Redelivered and
late events are therefore harmless no-ops, never errors.

The one exception is an order that is paid but not yet fulfilled: an earlier
delivery failed part-way through the post-payment work, so a payment event
for it picks that work up again.

Order writes are versioned. If the order changed between read and write,
it is re-read and the decision is taken again on the fresh state.

Events that can never succeed (no order reference, unknown order) are
logged and dropped, so the gateway is not asked to redeliver forever.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import assert_never

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from marketplace.cart.cart import ShoppingCart
from marketplace.coupon.coupon import Coupon
from marketplace.errors import GatewayError
from marketplace.fanout.events import OrderCreated
from marketplace.fanout.notifier import EmailNotifier
from marketplace.fanout.publisher import EventFanout
from marketplace.inventory.ledger import InventoryLedger, StockRequest
from marketplace.order.order import Order, OrderStatus, SettlementMode
from marketplace.payments.gateway.port import PaymentGateway
from marketplace.shared.money import to_minor_units

logger = structlog.get_logger(__name__)

MAX_WRITE_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Gateway events
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SessionCompleted:
    order_reference: str | None
    session_id: str
    cart_id: str | None = None
    payment_intent_id: str | None = None
    customer_email: str | None = None


@dataclass(frozen=True)
class SessionExpired:
    order_reference: str | None
    session_id: str


@dataclass(frozen=True)
class PaymentSucceeded:
    order_reference: str | None
    payment_intent_id: str


@dataclass(frozen=True)
class PaymentFailed:
    order_reference: str | None
    payment_intent_id: str
    failure_reason: str | None = None


GatewayEvent = SessionCompleted | SessionExpired | PaymentSucceeded | PaymentFailed


def parse_gateway_event(event: dict) -> GatewayEvent | None:
    """Translate a verified gateway event into its typed form.

    Returns None for event types this pipeline does not handle.
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    reference = (obj.get("metadata") or {}).get("orderReference")

    match event_type:
        case "checkout.session.completed":
            return SessionCompleted(
                order_reference=reference,
                session_id=obj.get("id"),
                cart_id=obj.get("client_reference_id"),
                payment_intent_id=obj.get("payment_intent"),
                customer_email=(obj.get("customer_details") or {}).get("email") or obj.get("customer_email"),
            )
        case "checkout.session.expired":
            return SessionExpired(order_reference=reference, session_id=obj.get("id"))
        case "payment_intent.succeeded":
            return PaymentSucceeded(order_reference=reference, payment_intent_id=obj.get("id"))
        case "payment_intent.payment_failed":
            return PaymentFailed(
                order_reference=reference,
                payment_intent_id=obj.get("id"),
                failure_reason=(obj.get("last_payment_error") or {}).get("message"),
            )
        case _:
            return None


class WebhookOutcome(Enum):
    APPLIED = "applied"
    NO_OP = "no_op"
    DROPPED = "dropped"
    IGNORED = "ignored"


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------
class PaymentWebhookProcessor:
    def __init__(
        self,
        domain,
        ledger: InventoryLedger,
        fanout: EventFanout,
        gateway: PaymentGateway,
        notifier: EmailNotifier | None = None,
    ) -> None:
        self._domain = domain
        self._ledger = ledger
        self._fanout = fanout
        self._gateway = gateway
        self._notifier = notifier

    def handle_payload(self, payload: bytes, signature: str) -> WebhookOutcome:
        """Verify, parse and process a raw webhook delivery.

        Raises:
            WebhookSignatureError: the payload is not authentically from the gateway.
        """
        raw = self._gateway.construct_event(payload, signature)
        event = parse_gateway_event(raw)
        if event is None:
            logger.info("Ignoring unhandled gateway event", event_type=raw.get("type"), event_id=raw.get("id"))
            return WebhookOutcome.IGNORED
        return self.process(event)

    def process(self, event: GatewayEvent) -> WebhookOutcome:
        if not event.order_reference:
            logger.error("Gateway event carries no order reference, dropping", event_type=type(event).__name__)
            return WebhookOutcome.DROPPED

        match event:
            case SessionCompleted():
                return self._on_session_completed(event)
            case SessionExpired():
                return self._on_session_expired(event)
            case PaymentSucceeded():
                return self._on_payment_succeeded(event)
            case PaymentFailed():
                return self._on_payment_failed(event)
            case _:
                assert_never(event)

    # -------------------------------------------------------------------
    # Versioned read-modify-write
    # -------------------------------------------------------------------
    def _update_order(self, reference: str, change: Callable[[Order], bool]) -> tuple[Order | None, bool]:
        """Apply ``change`` to the freshest copy of the order.

        ``change`` returns False when the order's state makes the event a
        no-op. Returns the order (None when unknown) and whether it changed.
        """
        repo = self._domain.repository_for(Order)
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            order = repo.find_by_reference(reference)
            if order is None:
                return None, False
            if not change(order):
                return order, False
            try:
                repo.add(order)
            except ExpectedVersionError:
                logger.warning("Order changed concurrently, re-reading", order_reference=reference, attempt=attempt)
                continue
            return order, True

        raise ExpectedVersionError(f"Order {reference} kept changing; giving up")

    def _save_aggregate(self, aggregate_cls, identifier, change: Callable) -> bool:
        repo = self._domain.repository_for(aggregate_cls)
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            try:
                aggregate = repo.get(identifier)
            except ObjectNotFoundError:
                return False
            change(aggregate)
            try:
                repo.add(aggregate)
            except ExpectedVersionError:
                logger.warning(
                    "Aggregate changed concurrently, re-reading",
                    aggregate=aggregate_cls.__name__,
                    attempt=attempt,
                )
                continue
            return True

        raise ExpectedVersionError(f"{aggregate_cls.__name__} {identifier} kept changing; giving up")

    @staticmethod
    def _dropped(event) -> WebhookOutcome:
        logger.error(
            "No order for gateway event, dropping",
            event_type=type(event).__name__,
            order_reference=event.order_reference,
        )
        return WebhookOutcome.DROPPED

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------
    def _mark_paid(self, payment_intent_id):
        def change(order: Order) -> bool:
            if not order.can_transition_to(OrderStatus.PROCESSING):
                return False
            order.mark_paid(payment_intent_id=payment_intent_id)
            return True

        return change

    def _on_session_completed(self, event: SessionCompleted) -> WebhookOutcome:
        order, applied = self._update_order(event.order_reference, self._mark_paid(event.payment_intent_id))
        if order is None:
            return self._dropped(event)
        if not applied:
            if order.awaiting_fulfilment:
                return self._resume(order, event, customer_email=event.customer_email)
            logger.warning(
                "Session completed for an order that is no longer pending, ignoring",
                order_reference=event.order_reference,
                status=order.status,
                payment_status=order.payment_status,
            )
            return WebhookOutcome.NO_OP

        logger.info("Order marked paid", order_reference=order.reference, session_id=event.session_id)
        self._complete(order, customer_email=event.customer_email)
        return WebhookOutcome.APPLIED

    def _on_payment_succeeded(self, event: PaymentSucceeded) -> WebhookOutcome:
        # Races with session completed; whichever arrives first completes the order
        order, applied = self._update_order(event.order_reference, self._mark_paid(event.payment_intent_id))
        if order is None:
            return self._dropped(event)
        if not applied:
            if order.awaiting_fulfilment:
                return self._resume(order, event)
            logger.info("Payment already recorded for order", order_reference=event.order_reference)
            return WebhookOutcome.NO_OP

        logger.info("Order marked paid from payment intent", order_reference=order.reference)
        self._complete(order)
        return WebhookOutcome.APPLIED

    def _resume(self, order: Order, event, customer_email: str | None = None) -> WebhookOutcome:
        """Finish the post-payment work an earlier delivery started but did not complete."""
        logger.warning(
            "Order paid but not fulfilled, resuming completion",
            order_reference=order.reference,
            event_type=type(event).__name__,
        )
        self._complete(order, customer_email=customer_email)
        return WebhookOutcome.APPLIED

    def _cancel(self, event, cancel: Callable[[Order], None]) -> WebhookOutcome:
        def change(order: Order) -> bool:
            if not order.can_transition_to(OrderStatus.CANCELLED):
                return False
            cancel(order)
            return True

        order, applied = self._update_order(event.order_reference, change)
        if order is None:
            return self._dropped(event)
        if not applied:
            logger.warning(
                "Cancellation event for an order that is no longer pending, ignoring",
                event_type=type(event).__name__,
                order_reference=event.order_reference,
                status=order.status,
            )
            return WebhookOutcome.NO_OP

        logger.info("Order cancelled", order_reference=order.reference, reason=order.payment.failure_reason)
        return WebhookOutcome.APPLIED

    def _on_session_expired(self, event: SessionExpired) -> WebhookOutcome:
        return self._cancel(event, lambda order: order.mark_expired())

    def _on_payment_failed(self, event: PaymentFailed) -> WebhookOutcome:
        return self._cancel(event, lambda order: order.mark_failed(event.failure_reason))

    # -------------------------------------------------------------------
    # Completion side effects
    #
    # Run by whichever event paid the order, and again by any later payment
    # event until the order is marked fulfilled. Every step tolerates being
    # repeated: the cart consume and coupon count are keyed by the order,
    # stock by its SALE rows, transfers by their idempotency keys.
    # -------------------------------------------------------------------
    def _complete(self, order: Order, customer_email: str | None = None) -> None:
        log = logger.bind(order_reference=order.reference)

        if not self._save_aggregate(ShoppingCart, order.cart_id, lambda cart: cart.check_out(order.id)):
            log.warning("Originating cart not found", cart_id=str(order.cart_id))

        if order.coupon_code:
            self._record_coupon_usage(order)

        requests = [
            StockRequest(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
                order_reference=order.reference,
            )
            for item in order.items
        ]
        results = self._ledger.decrement(requests)
        shortfalls = [
            {
                "product_id": request.product_id,
                "variant_id": request.variant_id,
                "quantity": request.quantity,
                "message": result.message,
            }
            for request, result in zip(requests, results, strict=True)
            if not result.success
        ]
        if shortfalls:
            # Money has moved; reconciliation happens outside this pipeline
            log.error("Paid order could not be fully covered by stock", shortfalls=shortfalls)
            order, _ = self._update_order(order.reference, lambda fresh: fresh.record_shortfalls(shortfalls) or True)

        if order.payment and order.payment.settlement_mode == SettlementMode.SEPARATE_TRANSFERS.value:
            order = self._pay_out_sellers(order)

        for sub_order in order.sub_orders:
            self._fanout.publish(
                OrderCreated(
                    seller_id=str(sub_order.seller_id),
                    order_reference=order.reference,
                    customer_id=order.customer_id,
                    items=tuple(
                        {
                            "productId": str(item.product_id),
                            "variantId": str(item.variant_id) if item.variant_id else None,
                            "name": item.name,
                            "quantity": item.quantity,
                            "price": item.unit_price,
                        }
                        for item in order.items_for(sub_order.seller_id)
                    ),
                    total=sub_order.total,
                    status=sub_order.status,
                )
            )

        if self._notifier is not None:
            self._notifier.order_confirmation(order, to=customer_email)

        self._update_order(order.reference, self._mark_fulfilled)
        log.info("Order fulfilled")

    @staticmethod
    def _mark_fulfilled(order: Order) -> bool:
        if order.fulfilled_at is not None:
            return False
        order.mark_fulfilled()
        return True

    def _record_coupon_usage(self, order: Order) -> None:
        coupon = self._domain.repository_for(Coupon).find_by_code(order.coupon_code)
        if coupon is None:
            logger.warning("Coupon on paid order no longer exists", coupon_code=order.coupon_code)
            return
        # record_usage ignores an order it has already counted
        self._save_aggregate(Coupon, coupon.id, lambda fresh: fresh.record_usage(order.reference))

    def _pay_out_sellers(self, order: Order) -> Order:
        """Transfer each seller's net share of a multi-seller payment."""
        transfers = {}
        for settlement in order.settlements:
            if settlement.transfer_id:
                continue
            try:
                transfers[str(settlement.seller_id)] = self._gateway.create_transfer(
                    amount=to_minor_units(settlement.net_amount),
                    currency=order.currency,
                    destination=settlement.destination,
                    transfer_group=order.reference,
                    source_transaction=order.payment.payment_intent_id,
                    idempotency_key=f"{order.reference}-{settlement.seller_id}",
                )
            except GatewayError as exc:
                logger.error(
                    "Seller transfer failed",
                    order_reference=order.reference,
                    seller_id=str(settlement.seller_id),
                    error=exc.message,
                )

        if not transfers:
            return order

        def record(fresh: Order) -> bool:
            for seller_id, transfer_id in transfers.items():
                fresh.record_transfer(seller_id, transfer_id)
            return True

        updated, _ = self._update_order(order.reference, record)
        logger.info("Seller transfers created", order_reference=order.reference, transfers=len(transfers))
        return updated
