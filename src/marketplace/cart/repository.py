"""Cart lookups by owner."""

from marketplace.cart.cart import CartStatus, ShoppingCart
from marketplace.domain import marketplace


@marketplace.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_active_for_owner(self, customer_id=None, session_id=None):
        """Return the owner's active, unexpired cart, or None."""
        if customer_id:
            carts = self._dao.query.filter(customer_id=customer_id, status=CartStatus.ACTIVE.value).all().items
        elif session_id:
            carts = self._dao.query.filter(session_id=session_id, status=CartStatus.ACTIVE.value).all().items
        else:
            return None

        live = [cart for cart in carts if not cart.is_expired()]
        return live[0] if live else None
