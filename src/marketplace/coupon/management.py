"""Coupon management: commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.coupon.coupon import Coupon
from marketplace.domain import marketplace


@marketplace.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=100)
    name = String(max_length=255)
    kind = String(required=True)  # Percentage, Fixed_Amount
    value = Float(required=True)
    min_order_amount = Float()
    max_discount = Float()
    starts_at = DateTime()
    ends_at = DateTime()
    usage_limit = Integer()
    per_user_limit = Integer()


@marketplace.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


@marketplace.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Coupon {command.code} already exists"]})

        coupon = Coupon.create(
            code=command.code,
            name=command.name,
            kind=command.kind,
            value=command.value,
            min_order_amount=command.min_order_amount,
            max_discount=command.max_discount,
            starts_at=command.starts_at,
            ends_at=command.ends_at,
            usage_limit=command.usage_limit,
            per_user_limit=command.per_user_limit,
        )
        repo.add(coupon)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.deactivate()
        repo.add(coupon)
