"""Coupon aggregate: promotional discount codes.

A coupon discounts a cart either by a percentage of the subtotal (optionally
capped) or by a fixed amount (never more than the subtotal). Validity is a
combination of the active flag, an activity window, a minimum order amount,
and global / per-customer usage limits.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String

from marketplace.coupon.events import CouponCreated, CouponUsed
from marketplace.domain import marketplace
from marketplace.shared.money import round_money


class CouponKind(Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "Fixed_Amount"


def compute_discount(subtotal: float, kind: str, value: float, max_discount: float | None = None) -> float:
    """Discount a coupon of the given kind grants on a subtotal."""
    if CouponKind(kind) == CouponKind.PERCENTAGE:
        discount = subtotal * (value / 100)
        if max_discount and discount > max_discount:
            discount = max_discount
    else:
        discount = min(subtotal, value)
    return round_money(discount)


@marketplace.entity(part_of="Coupon")
class CouponRedemption:
    """One paid order that used the coupon."""

    order_reference = String(required=True, max_length=50)
    redeemed_at = DateTime()


@marketplace.aggregate
class Coupon:
    code = String(required=True, max_length=100, unique=True)
    name = String(max_length=255)
    kind = String(required=True, choices=CouponKind)
    value = Float(required=True, min_value=0.0)
    min_order_amount = Float()
    max_discount = Float()
    is_active = Boolean(default=True)
    starts_at = DateTime()
    ends_at = DateTime()
    usage_limit = Integer()
    usage_count = Integer(default=0)
    per_user_limit = Integer()
    redemptions = HasMany(CouponRedemption)
    created_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_one_hundred(self):
        if self.kind == CouponKind.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    @classmethod
    def create(
        cls,
        code,
        kind,
        value,
        name=None,
        min_order_amount=None,
        max_discount=None,
        starts_at=None,
        ends_at=None,
        usage_limit=None,
        per_user_limit=None,
    ):
        coupon = cls(
            code=code,
            name=name,
            kind=kind,
            value=value,
            min_order_amount=min_order_amount,
            max_discount=max_discount,
            starts_at=starts_at,
            ends_at=ends_at,
            usage_limit=usage_limit,
            per_user_limit=per_user_limit,
            usage_count=0,
            is_active=True,
            created_at=datetime.now(UTC),
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=code,
                kind=kind,
                value=value,
            )
        )
        return coupon

    def discount_for(self, subtotal: float) -> float:
        return compute_discount(subtotal, self.kind, self.value, self.max_discount)

    @property
    def usage_exhausted(self) -> bool:
        return bool(self.usage_limit) and self.usage_count >= self.usage_limit

    def deactivate(self):
        self.is_active = False

    def redeemed_by(self, order_reference) -> bool:
        return any(r.order_reference == order_reference for r in self.redemptions)

    def record_usage(self, order_reference) -> bool:
        """Count one redemption against the global usage limit.

        An order is counted once; returns False if it was already counted.
        """
        if self.redeemed_by(order_reference):
            return False

        self.add_redemptions(CouponRedemption(order_reference=order_reference, redeemed_at=datetime.now(UTC)))
        self.usage_count = (self.usage_count or 0) + 1
        self.raise_(
            CouponUsed(
                coupon_id=str(self.id),
                code=self.code,
                order_reference=order_reference,
                usage_count=self.usage_count,
            )
        )
        return True
