"""Cart coupon management: commands and handler.

Applying a coupon only checks that the code exists and is switched on.
The full set of coupon rules (window, minimum, usage limits) is enforced
by the cart validator at checkout, against the cart as it is then.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.coupon.coupon import Coupon
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Apply a coupon code to a shopping cart."""

    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)


@marketplace.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    cart_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ApplyCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        coupon = current_domain.repository_for(Coupon).find_by_code(command.coupon_code)
        if coupon is None or not coupon.is_active:
            raise ValidationError({"coupon_code": ["Invalid coupon code"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.apply_coupon(
            code=coupon.code,
            kind=coupon.kind,
            value=coupon.value,
            max_discount=coupon.max_discount,
        )
        repo.add(cart)

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_coupon()
        repo.add(cart)
