"""Configurable fake payment gateway for development and testing.

Simulates hosted checkout sessions without any external calls. It can be
configured at runtime to fail, and records every call for assertions.
Webhook payloads are accepted when signed with ``test-signature``.
"""

import json
from uuid import uuid4

from marketplace.errors import GatewayError, WebhookSignatureError
from marketplace.payments.gateway.port import (
    CheckoutSession,
    CheckoutSessionRequest,
    GatewayDiscount,
    PaymentGateway,
)
from marketplace.shared.money import to_minor_units

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.sessions: dict[str, CheckoutSession] = {}
        self.discounts: dict[str, GatewayDiscount] = {}
        self.requests: dict[str, CheckoutSessionRequest] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        self.calls.append({"method": "create_checkout_session", "request": request})
        self._fail_if_configured()

        session_id = f"cs_test_{uuid4().hex[:24]}"
        session = CheckoutSession(
            session_id=session_id,
            url=f"https://checkout.fake/pay/{session_id}",
            expires_at=request.expires_at,
            status="open",
            payment_status="unpaid",
            order_reference=request.order_reference,
        )
        self.sessions[session_id] = session
        self.requests[session_id] = request
        return session

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        self.calls.append({"method": "retrieve_session", "session_id": session_id})
        self._fail_if_configured()

        session = self.sessions.get(session_id)
        if session is None:
            raise GatewayError(f"No such checkout session: {session_id}")
        return session

    def complete_session(self, session_id: str) -> None:
        """Mark a session paid, as the hosted page would after a successful card payment."""
        session = self.sessions[session_id]
        self.sessions[session_id] = CheckoutSession(
            session_id=session.session_id,
            url=session.url,
            expires_at=session.expires_at,
            status="complete",
            payment_status="paid",
            order_reference=session.order_reference,
        )

    def amount_due(self, session_id: str) -> int:
        """What the hosted page charges for a session: line items less the discount."""
        request = self.requests[session_id]
        subtotal = sum(item.unit_amount * item.quantity for item in request.line_items)
        discount = self.discounts.get(request.discount_id) if request.discount_id else None
        if discount is None:
            return subtotal
        if discount.kind == "Percentage":
            off = to_minor_units(subtotal * discount.value / 10000)
        else:
            off = to_minor_units(discount.value)
        return max(0, subtotal - off)

    def get_or_create_discount(self, discount: GatewayDiscount) -> str:
        self.calls.append({"method": "get_or_create_discount", "discount": discount})
        self._fail_if_configured()

        self.discounts.setdefault(discount.gateway_id, discount)
        return discount.gateway_id

    def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        transfer_group: str,
        source_transaction: str | None,
        idempotency_key: str,
    ) -> str:
        self.calls.append(
            {
                "method": "create_transfer",
                "amount": amount,
                "currency": currency,
                "destination": destination,
                "transfer_group": transfer_group,
                "source_transaction": source_transaction,
                "idempotency_key": idempotency_key,
            }
        )
        self._fail_if_configured()
        return f"tr_test_{uuid4().hex[:16]}"

    def construct_event(self, payload: bytes, signature: str) -> dict:
        if signature != TEST_SIGNATURE:
            raise WebhookSignatureError("Webhook signature verification failed")
        return json.loads(payload)

    def reset(self) -> None:
        self.should_succeed = True
        self.failure_reason = "Gateway unavailable"
        self.calls.clear()
        self.sessions.clear()
        self.discounts.clear()
        self.requests.clear()
