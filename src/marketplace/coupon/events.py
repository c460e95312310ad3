"""Domain events for the Coupon aggregate."""

from protean.fields import Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Coupon")
class CouponCreated:
    """A coupon code was registered."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    kind = String(required=True)
    value = Float(required=True)


@marketplace.event(part_of="Coupon")
class CouponUsed:
    """A coupon was redeemed by a paid order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_reference = String(required=True)
    usage_count = Integer(required=True)
