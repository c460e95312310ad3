"""Cart item management: commands and handler.

Prices and seller ownership come from the catalogue at add time; the cart
never trusts a client-supplied price.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue import get_catalogue
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        entry = get_catalogue().lookup(command.product_id, command.variant_id)
        if entry is None or not entry.published:
            raise ValidationError({"product_id": ["Product is not available"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        line_id = cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            seller_id=entry.seller_id,
            name=entry.name,
            unit_price=entry.price,
            quantity=command.quantity,
        )
        repo.add(cart)
        return line_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.update_item_quantity(
            line_id=command.line_id,
            new_quantity=command.new_quantity,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_item(line_id=command.line_id)
        repo.add(cart)
