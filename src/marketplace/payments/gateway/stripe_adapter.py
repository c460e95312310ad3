"""Stripe payment gateway adapter.

Uses Stripe Checkout with Connect. A single-seller order is a destination
charge: the platform fee is kept as ``application_fee_amount`` and the rest
goes to the seller's connected account. A multi-seller order is charged to
the platform under a ``transfer_group`` equal to the order reference, and
each seller is paid by a separate transfer once the payment succeeds.
"""

import json
from datetime import UTC, datetime

import stripe
import structlog

from marketplace.errors import GatewayError, WebhookSignatureError
from marketplace.payments.gateway.port import (
    CheckoutSession,
    CheckoutSessionRequest,
    GatewayDiscount,
    PaymentGateway,
)
from marketplace.shared.money import to_minor_units

logger = structlog.get_logger(__name__)


def _session_from(session) -> CheckoutSession:
    expires_at = session.get("expires_at")
    metadata = session.get("metadata") or {}
    return CheckoutSession(
        session_id=session["id"],
        url=session.get("url"),
        expires_at=datetime.fromtimestamp(expires_at, tz=UTC) if expires_at else None,
        status=session.get("status"),
        payment_status=session.get("payment_status"),
        order_reference=metadata.get("orderReference"),
    )


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        metadata = {
            "cartId": request.cart_id,
            "orderReference": request.order_reference,
            "userId": request.customer_id,
        }
        payment_intent_data = {
            "transfer_group": request.order_reference,
            "metadata": metadata,
        }
        if request.is_single_seller:
            payment_intent_data["application_fee_amount"] = request.application_fee_amount
            payment_intent_data["transfer_data"] = {"destination": request.splits[0].destination}

        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency,
                        "product_data": {"name": item.name},
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
                for item in request.line_items
            ],
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "client_reference_id": request.cart_id,
            "expires_at": int(request.expires_at.timestamp()),
            "metadata": metadata,
            "payment_intent_data": payment_intent_data,
        }
        if request.discount_id:
            params["discounts"] = [{"coupon": request.discount_id}]
        if request.customer_email:
            params["customer_email"] = request.customer_email

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                idempotency_key=f"checkout-{request.order_reference}",
                **params,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session creation failed", error=str(exc), error_type=type(exc).__name__)
            raise GatewayError(f"Payment session could not be created: {exc.user_message or exc}") from exc

        return _session_from(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise GatewayError(f"Checkout session could not be retrieved: {exc}") from exc
        return _session_from(session)

    def get_or_create_discount(self, discount: GatewayDiscount) -> str:
        try:
            return stripe.Coupon.retrieve(discount.gateway_id, api_key=self.api_key)["id"]
        except stripe.InvalidRequestError:
            pass  # Not created yet
        except stripe.StripeError as exc:
            raise GatewayError(f"Discount lookup failed: {exc}") from exc

        params = {"id": discount.gateway_id, "name": discount.code, "duration": "once"}
        if discount.kind == "Percentage":
            params["percent_off"] = discount.value
        else:
            params["amount_off"] = to_minor_units(discount.value)
            params["currency"] = discount.currency

        try:
            return stripe.Coupon.create(api_key=self.api_key, **params)["id"]
        except stripe.StripeError as exc:
            raise GatewayError(f"Discount could not be created: {exc}") from exc

    def _charge_for(self, payment_reference: str) -> str:
        """Transfers are funded from a charge; resolve a payment intent to its charge."""
        if not payment_reference.startswith("pi_"):
            return payment_reference
        return stripe.PaymentIntent.retrieve(payment_reference, api_key=self.api_key)["latest_charge"]

    def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        transfer_group: str,
        source_transaction: str | None,
        idempotency_key: str,
    ) -> str:
        params = {
            "amount": amount,
            "currency": currency,
            "destination": destination,
            "transfer_group": transfer_group,
        }
        try:
            if source_transaction:
                params["source_transaction"] = self._charge_for(source_transaction)
            transfer = stripe.Transfer.create(api_key=self.api_key, idempotency_key=idempotency_key, **params)
        except stripe.StripeError as exc:
            raise GatewayError(f"Transfer to {destination} failed: {exc}") from exc
        return transfer["id"]

    def construct_event(self, payload: bytes, signature: str) -> dict:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Webhook signature verification failed") from exc
        except ValueError as exc:
            raise WebhookSignatureError("Webhook payload is not valid JSON") from exc
        return json.loads(payload)
