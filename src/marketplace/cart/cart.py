"""Shopping Cart aggregate: the pre-checkout collection of intended purchases.

A cart belongs either to a registered customer or to an anonymous session.
Guest carts expire; customer carts do not. Each line captures the unit price
at add time so the checkout charges what the customer saw.

Totals are denormalized on the cart and recomputed after every change:
    total = max(0, subtotal - discount + tax + shipping)

At successful payment the cart is consumed: lines are detached, totals are
zeroed, and the cart points at the order it became (Cart → Order only).
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.cart.events import (
    CartAssigned,
    CartCheckedOut,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from marketplace.coupon.coupon import compute_discount
from marketplace.domain import marketplace
from marketplace.shared.money import order_total, round_money


class CartStatus(Enum):
    ACTIVE = "Active"
    CHECKED_OUT = "Checked_Out"
    MERGED = "Merged"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="ShoppingCart")
class AppliedCoupon:
    """Snapshot of the coupon terms needed to recompute the discount."""

    code = String(required=True, max_length=100)
    kind = String(required=True, max_length=20)
    value = Float(required=True, min_value=0.0)
    max_discount = Float()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="ShoppingCart")
class CartLine:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    seller_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(default=0.0)
    added_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Nullable for guest carts
    session_id = String(max_length=255)  # For guest cart identification
    lines = HasMany(CartLine)
    coupon = ValueObject(AppliedCoupon)
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    total = Float(default=0.0)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    order_id = Identifier()  # Set once the cart has been consumed by an order
    expires_at = DateTime()  # Guest carts only
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_components(self):
        expected = order_total(self.subtotal or 0.0, self.discount or 0.0, self.tax or 0.0, self.shipping or 0.0)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Total must equal subtotal - discount + tax + shipping"]})

    @invariant.post
    def checked_out_cart_holds_no_lines(self):
        if self.status == CartStatus.CHECKED_OUT.value and self.lines:
            raise ValidationError({"cart": ["A checked-out cart cannot hold items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None, guest_ttl_days=3):
        if not customer_id and not session_id:
            raise ValidationError({"owner": ["A cart needs a customer or a guest session"]})

        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            session_id=session_id,
            status=CartStatus.ACTIVE.value,
            expires_at=None if customer_id else now + timedelta(days=guest_ttl_days),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_guest(self) -> bool:
        return not self.customer_id

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= now

    def _assert_active(self, action):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Cannot {action}: cart is {self.status}"]})

    def _find_line(self, product_id, variant_id):
        return next(
            (
                line
                for line in self.lines
                if str(line.product_id) == str(product_id)
                and (str(line.variant_id) if line.variant_id else None) == (str(variant_id) if variant_id else None)
            ),
            None,
        )

    def _recalculate_totals(self):
        """Recompute denormalized totals from the lines and applied coupon."""
        subtotal = round_money(sum(line.line_total for line in self.lines))
        discount = 0.0
        if self.coupon:
            discount = compute_discount(subtotal, self.coupon.kind, self.coupon.value, self.coupon.max_discount)

        self.subtotal = subtotal
        self.discount = discount
        self.total = order_total(subtotal, discount, self.tax or 0.0, self.shipping or 0.0)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, seller_id, name, unit_price, quantity, variant_id=None):
        """Add a product to the cart, or increase the quantity of its existing line."""
        self._assert_active("add items")
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self._find_line(product_id, variant_id)

        with atomic_change(self):
            if existing:
                existing.quantity += quantity
                existing.line_total = round_money(existing.unit_price * existing.quantity)
                line_id = str(existing.id)
            else:
                line = CartLine(
                    product_id=product_id,
                    variant_id=variant_id,
                    seller_id=seller_id,
                    name=name,
                    quantity=quantity,
                    unit_price=unit_price,
                    line_total=round_money(unit_price * quantity),
                    added_at=datetime.now(UTC),
                )
                self.add_lines(line)
                line_id = str(line.id)

            self._recalculate_totals()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                line_id=line_id,
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                unit_price=unit_price,
            )
        )
        return line_id

    def _get_line(self, line_id):
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"line_id": ["Item not found in cart"]})
        return line

    def update_item_quantity(self, line_id, new_quantity):
        self._assert_active("update quantities")
        if new_quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self._get_line(line_id)
        previous_quantity = line.quantity

        with atomic_change(self):
            line.quantity = new_quantity
            line.line_total = round_money(line.unit_price * new_quantity)
            self._recalculate_totals()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, line_id):
        self._assert_active("remove items")
        line = self._get_line(line_id)

        with atomic_change(self):
            self.remove_lines(line)
            self._recalculate_totals()

        self.raise_(CartItemRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self):
        """Remove every line and the coupon; the cart stays active."""
        self._assert_active("clear the cart")
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.coupon = None
            self._recalculate_totals()

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, code, kind, value, max_discount=None):
        self._assert_active("apply a coupon")
        if self.coupon and self.coupon.code == code:
            raise ValidationError({"coupon_code": ["Coupon already applied"]})

        with atomic_change(self):
            self.coupon = AppliedCoupon(code=code, kind=kind, value=value, max_discount=max_discount)
            self._recalculate_totals()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=code,
                discount=self.discount,
            )
        )

    def remove_coupon(self):
        self._assert_active("remove the coupon")
        if not self.coupon:
            raise ValidationError({"coupon_code": ["No coupon applied"]})

        code = self.coupon.code
        with atomic_change(self):
            self.coupon = None
            self._recalculate_totals()

        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    # -------------------------------------------------------------------
    # Ownership (guest → authenticated)
    # -------------------------------------------------------------------
    def assign_to(self, customer_id):
        """Hand a guest cart over to the customer who just signed in."""
        self._assert_active("reassign the cart")
        previous_session = self.session_id
        self.customer_id = customer_id
        self.expires_at = None
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartAssigned(
                cart_id=str(self.id),
                customer_id=str(customer_id),
                session_id=previous_session,
            )
        )

    def merge_from(self, guest_cart):
        """Move every line of a guest cart into this cart, then retire the guest cart."""
        self._assert_active("merge carts")
        guest_cart._assert_active("merge carts")
        merged_count = len(guest_cart.lines)

        with atomic_change(self):
            for guest_line in guest_cart.lines:
                existing = self._find_line(guest_line.product_id, guest_line.variant_id)
                if existing:
                    existing.quantity += guest_line.quantity
                    existing.line_total = round_money(existing.unit_price * existing.quantity)
                else:
                    self.add_lines(
                        CartLine(
                            product_id=guest_line.product_id,
                            variant_id=guest_line.variant_id,
                            seller_id=guest_line.seller_id,
                            name=guest_line.name,
                            quantity=guest_line.quantity,
                            unit_price=guest_line.unit_price,
                            line_total=guest_line.line_total,
                            added_at=guest_line.added_at,
                        )
                    )
            if not self.coupon and guest_cart.coupon:
                self.coupon = guest_cart.coupon
            self._recalculate_totals()

        with atomic_change(guest_cart):
            for line in list(guest_cart.lines):
                guest_cart.remove_lines(line)
            guest_cart.coupon = None
            guest_cart._recalculate_totals()
            guest_cart.status = CartStatus.MERGED.value

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(guest_cart.id),
                lines_merged_count=merged_count,
            )
        )

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def check_out(self, order_id):
        """Consume the cart after its order has been paid."""
        if CartStatus(self.status) == CartStatus.CHECKED_OUT:
            return

        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.coupon = None
            self.subtotal = 0.0
            self.discount = 0.0
            self.tax = 0.0
            self.shipping = 0.0
            self.total = 0.0
            self.order_id = order_id
            self.status = CartStatus.CHECKED_OUT.value
            self.updated_at = datetime.now(UTC)

        self.raise_(CartCheckedOut(cart_id=str(self.id), order_id=str(order_id)))
