"""Application tests for cart commands processed through the domain."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.cart.cart import CartStatus, ShoppingCart
from marketplace.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from marketplace.cart.management import AssignCartToCustomer, ClearCart, CreateCart


def _get(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestCreateCart:
    def test_returns_existing_active_cart(self):
        first = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
        second = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
        assert first == second

    def test_guest_cart_gets_expiry(self):
        cart_id = current_domain.process(CreateCart(session_id="sess-001"), asynchronous=False)
        assert _get(cart_id).expires_at is not None


class TestCartItemCommands:
    def test_add_captures_catalogue_price(self, catalogue):
        catalogue.register_product("prod-001", "Mug", 12.5, "seller-a")
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)

        line_id = current_domain.process(
            AddToCart(cart_id=cart_id, product_id="prod-001", quantity=2),
            asynchronous=False,
        )

        cart = _get(cart_id)
        line = cart.lines[0]
        assert str(line.id) == line_id
        assert line.unit_price == 12.5
        assert str(line.seller_id) == "seller-a"
        assert cart.total == 25.0

    def test_variant_price_overrides_product_price(self, catalogue):
        catalogue.register_product("prod-001", "Shirt", 20.0, "seller-a")
        catalogue.register_product("prod-001", "Shirt (XL)", 24.0, "seller-a", variant_id="var-xl")
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)

        current_domain.process(
            AddToCart(cart_id=cart_id, product_id="prod-001", variant_id="var-xl", quantity=1),
            asynchronous=False,
        )

        assert _get(cart_id).lines[0].unit_price == 24.0

    def test_unpublished_product_is_rejected(self, catalogue):
        catalogue.register_product("prod-001", "Draft", 10.0, "seller-a", published=False)
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)

        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                AddToCart(cart_id=cart_id, product_id="prod-001", quantity=1),
                asynchronous=False,
            )
        assert "product_id" in exc.value.messages

    def test_update_and_remove(self, catalogue):
        catalogue.register_product("prod-001", "Mug", 10.0, "seller-a")
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
        line_id = current_domain.process(
            AddToCart(cart_id=cart_id, product_id="prod-001", quantity=1),
            asynchronous=False,
        )

        current_domain.process(
            UpdateCartQuantity(cart_id=cart_id, line_id=line_id, new_quantity=3),
            asynchronous=False,
        )
        assert _get(cart_id).total == 30.0

        current_domain.process(RemoveFromCart(cart_id=cart_id, line_id=line_id), asynchronous=False)
        assert len(_get(cart_id).lines) == 0

    def test_clear_cart_persists(self, catalogue):
        catalogue.register_product("prod-001", "Mug", 10.0, "seller-a")
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
        current_domain.process(AddToCart(cart_id=cart_id, product_id="prod-001", quantity=1), asynchronous=False)

        current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)

        assert len(_get(cart_id).lines) == 0


class TestCartCouponCommands:
    def test_apply_known_coupon(self, fill_cart, list_product, create_coupon):
        list_product("prod-001", "seller-a", 50.0, 10)
        create_coupon("SAVE10", value=10.0)
        cart_id = fill_cart([("prod-001", 2)], customer_id="cust-001")

        current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="SAVE10"), asynchronous=False)

        cart = _get(cart_id)
        assert cart.coupon.code == "SAVE10"
        assert cart.discount == 10.0
        assert cart.total == 90.0

    def test_unknown_coupon_is_rejected(self, fill_cart, list_product):
        list_product("prod-001", "seller-a", 50.0, 10)
        cart_id = fill_cart([("prod-001", 1)], customer_id="cust-001")

        with pytest.raises(ValidationError) as exc:
            current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="NOPE"), asynchronous=False)
        assert "coupon_code" in exc.value.messages

    def test_remove_coupon(self, fill_cart, list_product, create_coupon):
        list_product("prod-001", "seller-a", 50.0, 10)
        create_coupon("SAVE10", value=10.0)
        cart_id = fill_cart([("prod-001", 1)], customer_id="cust-001")
        current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="SAVE10"), asynchronous=False)

        current_domain.process(RemoveCouponFromCart(cart_id=cart_id), asynchronous=False)

        assert _get(cart_id).coupon is None


class TestAssignCartToCustomer:
    def test_guest_cart_is_reassigned_when_customer_has_none(self, fill_cart, list_product):
        list_product("prod-001", "seller-a", 10.0, 10)
        guest_cart_id = fill_cart([("prod-001", 1)], session_id="sess-001")

        result = current_domain.process(
            AssignCartToCustomer(session_id="sess-001", customer_id="cust-001"),
            asynchronous=False,
        )

        assert result == guest_cart_id
        cart = _get(guest_cart_id)
        assert str(cart.customer_id) == "cust-001"
        assert cart.expires_at is None

    def test_guest_cart_is_merged_into_customer_cart(self, fill_cart, list_product):
        list_product("prod-001", "seller-a", 10.0, 10)
        list_product("prod-002", "seller-b", 5.0, 10)
        customer_cart_id = fill_cart([("prod-001", 1)], customer_id="cust-001")
        guest_cart_id = fill_cart([("prod-001", 1), ("prod-002", 2)], session_id="sess-001")

        result = current_domain.process(
            AssignCartToCustomer(session_id="sess-001", customer_id="cust-001"),
            asynchronous=False,
        )

        assert result == customer_cart_id
        assert _get(customer_cart_id).subtotal == 30.0
        assert _get(guest_cart_id).status == CartStatus.MERGED.value

    def test_missing_guest_cart_is_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                AssignCartToCustomer(session_id="sess-unknown", customer_id="cust-001"),
                asynchronous=False,
            )
