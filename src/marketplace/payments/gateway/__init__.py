"""Active payment gateway.

FakeGateway serves development and tests. The app swaps in StripeGateway
at startup when a Stripe secret key is configured.
"""

from marketplace.payments.gateway.fake_adapter import FakeGateway
from marketplace.payments.gateway.port import PaymentGateway

_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = FakeGateway()
    return _gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _gateway
    _gateway = gateway


def reset_gateway() -> None:
    """Drop the active gateway; the next get_gateway() builds a fresh fake."""
    global _gateway
    _gateway = None
