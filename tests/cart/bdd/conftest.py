"""Shared BDD fixtures and step definitions for shopping carts."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers

from marketplace.cart.items import AddToCart
from marketplace.cart.management import CreateCart


@pytest.fixture()
def carts():
    """Cart id per customer or guest session."""
    return {}


def _add(carts, owner, create, product_id, quantity):
    if owner not in carts:
        carts[owner] = current_domain.process(create, asynchronous=False)
    current_domain.process(AddToCart(cart_id=carts[owner], product_id=product_id, quantity=quantity), asynchronous=False)


@given(parsers.cfparse('product "{product_id}" priced {price:f} from "{seller_id}"'))
def product(catalogue, product_id, price, seller_id):
    catalogue.register_product(product_id, f"Product {product_id}", float(price), seller_id)


@given(parsers.cfparse('customer "{customer_id}" has {quantity:d} of "{product_id}" in the cart'))
def customer_cart_line(carts, customer_id, quantity, product_id):
    _add(carts, customer_id, CreateCart(customer_id=customer_id), product_id, quantity)


@given(parsers.cfparse('guest session "{session_id}" has {quantity:d} of "{product_id}" in the cart'))
def guest_cart_line(carts, session_id, quantity, product_id):
    _add(carts, session_id, CreateCart(session_id=session_id), product_id, quantity)
