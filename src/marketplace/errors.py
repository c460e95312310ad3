"""Pipeline error taxonomy.

Aggregate invariants keep raising ``protean.exceptions.ValidationError``.
The errors below are raised by the pipeline services and carry what the
HTTP layer needs to render them: a machine-readable code, a message, an
optional detail payload, and a status code.
"""


class MarketplaceError(Exception):
    code = "MARKETPLACE_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: dict | list | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class CartNotFound(MarketplaceError):
    code = "CART_NOT_FOUND"
    status_code = 404


class CartAccessDenied(MarketplaceError):
    code = "CART_ACCESS_DENIED"
    status_code = 403


class OrderNotFound(MarketplaceError):
    code = "ORDER_NOT_FOUND"
    status_code = 404


class CheckoutValidationError(MarketplaceError):
    """The cart failed validation; ``code`` is the validation reason."""

    status_code = 422

    def __init__(self, reason: str, message: str, detail: dict | list | None = None) -> None:
        super().__init__(message, detail)
        self.code = reason


class SellersNotOnboarded(MarketplaceError):
    code = "SELLERS_NOT_ONBOARDED"
    status_code = 422

    def __init__(self, sellers: list[dict]) -> None:
        super().__init__("Some vendors are not set up for payments yet", sellers)
        self.sellers = sellers


class GatewayError(MarketplaceError):
    code = "GATEWAY_ERROR"
    status_code = 502


class WebhookSignatureError(MarketplaceError):
    code = "INVALID_SIGNATURE"
    status_code = 400


class BrokerUnavailable(MarketplaceError):
    code = "BROKER_UNAVAILABLE"
    status_code = 503


class RealtimeUnavailable(MarketplaceError):
    code = "REALTIME_UNAVAILABLE"
    status_code = 503


class OrderAccessDenied(MarketplaceError):
    code = "ORDER_ACCESS_DENIED"
    status_code = 403
