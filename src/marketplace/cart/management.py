"""Cart management: commands and handler.

Handles cart creation, and handing a guest cart over to a customer who
signs in (reassigned when the customer has no cart, merged otherwise).
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.config import get_settings
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class CreateCart:
    """Return the owner's active cart, creating one if none exists."""

    customer_id = Identifier()  # Optional for guest carts
    session_id = String(max_length=255)


@marketplace.command(part_of="ShoppingCart")
class AssignCartToCustomer:
    """Attach the guest session's cart to a signed-in customer."""

    session_id = String(required=True, max_length=255)
    customer_id = Identifier(required=True)


@marketplace.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        existing = repo.find_active_for_owner(
            customer_id=command.customer_id,
            session_id=command.session_id,
        )
        if existing:
            return str(existing.id)

        cart = ShoppingCart.create(
            customer_id=command.customer_id,
            session_id=command.session_id,
            guest_ttl_days=get_settings().guest_cart_ttl_days,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(AssignCartToCustomer)
    def assign_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        guest_cart = repo.find_active_for_owner(session_id=command.session_id)
        if guest_cart is None:
            raise ValidationError({"session_id": ["No active guest cart for this session"]})

        customer_cart = repo.find_active_for_owner(customer_id=command.customer_id)
        if customer_cart is None:
            guest_cart.assign_to(command.customer_id)
            repo.add(guest_cart)
            return str(guest_cart.id)

        customer_cart.merge_from(guest_cart)
        repo.add(customer_cart)
        repo.add(guest_cart)
        return str(customer_cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)
