"""Cart validation: is this cart still purchasable as it stands?

Checks run in a fixed order and stop at the first failing rule, except for
line availability, where every unavailable line is reported together so
the customer can fix them all at once. Validation reads only; it never
changes the cart, the coupon or the stock.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue.port import CatalogueLookup
from marketplace.coupon.coupon import Coupon
from marketplace.inventory.stock import StockItem
from marketplace.order.order import Order


class ValidationReason(Enum):
    CART_EMPTY = "CART_EMPTY"
    ITEMS_UNAVAILABLE = "ITEMS_UNAVAILABLE"
    COUPON_INACTIVE = "COUPON_INACTIVE"
    COUPON_NOT_STARTED = "COUPON_NOT_STARTED"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    MINIMUM_PURCHASE_NOT_MET = "MINIMUM_PURCHASE_NOT_MET"
    COUPON_USAGE_LIMIT_REACHED = "COUPON_USAGE_LIMIT_REACHED"
    USER_COUPON_LIMIT_REACHED = "USER_COUPON_LIMIT_REACHED"


class LineAvailability(Enum):
    VALID = "valid"
    INSUFFICIENT_STOCK = "insufficient_stock"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class LineCheck:
    line_id: str
    product_id: str
    variant_id: str | None
    availability: LineAvailability
    requested: int
    available: int = 0
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "lineId": self.line_id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "status": self.availability.value,
            "requested": self.requested,
            "available": self.available,
            "message": self.message,
        }


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: ValidationReason | None = None
    message: str | None = None
    detail: dict = field(default_factory=dict)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: ValidationReason, message: str, **detail) -> "ValidationResult":
        return cls(valid=False, reason=reason, message=message, detail=detail)

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True}
        return {"valid": False, "reason": self.reason.value, "message": self.message, **self.detail}


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class CartValidator:
    def __init__(self, domain, catalogue: CatalogueLookup) -> None:
        self._domain = domain
        self._catalogue = catalogue

    def check_line(self, line) -> LineCheck:
        variant_id = str(line.variant_id) if line.variant_id else None
        base = {
            "line_id": str(line.id),
            "product_id": str(line.product_id),
            "variant_id": variant_id,
            "requested": line.quantity,
        }

        entry = self._catalogue.lookup(str(line.product_id), variant_id)
        if entry is None or not entry.published:
            message = "Variant not found" if variant_id and entry is None else "Product is no longer available"
            return LineCheck(availability=LineAvailability.UNAVAILABLE, message=message, **base)

        stock = self._domain.repository_for(StockItem).find_for(line.product_id, variant_id)
        if stock is None:
            return LineCheck(availability=LineAvailability.UNAVAILABLE, message="Product is not stocked", **base)

        if stock.quantity < line.quantity:
            return LineCheck(
                availability=LineAvailability.INSUFFICIENT_STOCK,
                available=stock.quantity,
                message=f"Only {stock.quantity} left in stock",
                **base,
            )

        return LineCheck(availability=LineAvailability.VALID, available=stock.quantity, **base)

    def validate(self, cart: ShoppingCart, now: datetime | None = None) -> ValidationResult:
        now = now or datetime.now(UTC)

        if not cart.lines:
            return ValidationResult.fail(ValidationReason.CART_EMPTY, "Cart is empty")

        invalid = [check for check in map(self.check_line, cart.lines) if check.availability != LineAvailability.VALID]
        if invalid:
            return ValidationResult.fail(
                ValidationReason.ITEMS_UNAVAILABLE,
                "Some items in your cart are no longer available",
                invalidItems=[check.to_dict() for check in invalid],
            )

        if cart.coupon:
            return self._validate_coupon(cart, now)

        return ValidationResult.ok()

    def _validate_coupon(self, cart: ShoppingCart, now: datetime) -> ValidationResult:
        coupon = self._domain.repository_for(Coupon).find_by_code(cart.coupon.code)

        if coupon is None or not coupon.is_active:
            return ValidationResult.fail(ValidationReason.COUPON_INACTIVE, "The applied coupon is no longer active")

        if coupon.starts_at and now < _aware(coupon.starts_at):
            return ValidationResult.fail(ValidationReason.COUPON_NOT_STARTED, "The applied coupon is not yet active")

        if coupon.ends_at and now > _aware(coupon.ends_at):
            return ValidationResult.fail(ValidationReason.COUPON_EXPIRED, "The applied coupon has expired")

        # Measured against the subtotal, before the coupon's own discount
        if coupon.min_order_amount and cart.subtotal < coupon.min_order_amount:
            return ValidationResult.fail(
                ValidationReason.MINIMUM_PURCHASE_NOT_MET,
                f"Minimum purchase of ${coupon.min_order_amount:.2f} required for this coupon",
                requiredAmount=coupon.min_order_amount,
            )

        if coupon.usage_exhausted:
            return ValidationResult.fail(
                ValidationReason.COUPON_USAGE_LIMIT_REACHED,
                "This coupon has reached its usage limit",
            )

        if cart.customer_id and coupon.per_user_limit:
            used = self._domain.repository_for(Order).count_coupon_uses(str(cart.customer_id), coupon.code)
            if used >= coupon.per_user_limit:
                return ValidationResult.fail(
                    ValidationReason.USER_COUPON_LIMIT_REACHED,
                    "You have reached the personal usage limit for this coupon",
                )

        return ValidationResult.ok()
