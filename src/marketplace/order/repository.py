"""Order lookups by reference, session and coupon."""

from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus


@marketplace.repository(part_of=Order)
class OrderRepository:
    def find_by_reference(self, reference: str) -> Order | None:
        orders = self._dao.query.filter(reference=reference).all().items
        return orders[0] if orders else None

    def find_by_session_id(self, session_id: str) -> Order | None:
        """Find the order anchored to a gateway checkout session."""
        orders = self._dao.query.filter(session_id=session_id).all().items
        return orders[0] if orders else None

    def count_coupon_uses(self, customer_id: str, coupon_code: str) -> int:
        """Number of orders the customer has placed with the coupon, cancelled ones aside."""
        return (
            self._dao.query.filter(customer_id=customer_id, coupon_code=coupon_code)
            .exclude(status=OrderStatus.CANCELLED.value)
            .all()
            .total
        )
