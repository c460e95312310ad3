"""Shared BDD fixtures and step definitions for the checkout pipeline."""

import json

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when

from marketplace.cart.coupons import ApplyCouponToCart
from marketplace.cart.items import AddToCart
from marketplace.cart.management import CreateCart
from marketplace.checkout.orchestrator import Actor
from marketplace.errors import MarketplaceError
from marketplace.fanout.notifier import EmailNotifier
from marketplace.fanout.publisher import EventFanout
from marketplace.inventory.ledger import InventoryLedger
from marketplace.inventory.stock import StockItem
from marketplace.order.order import Order
from marketplace.payments.gateway.fake_adapter import TEST_SIGNATURE
from marketplace.payments.webhook import PaymentWebhookProcessor

SUCCESS_URL = "https://shop.example.com/success"
CANCEL_URL = "https://shop.example.com/cart"


# ---------------------------------------------------------------------------
# Scenario state
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the refusal raised by a checkout attempt."""
    return {"exc": None}


@pytest.fixture()
def carts():
    """Cart id per customer."""
    return {}


@pytest.fixture()
def checkouts():
    """Opened checkout session per customer."""
    return {}


@pytest.fixture()
def deliveries():
    """Every webhook payload delivered, with its outcome."""
    return []


@pytest.fixture()
def processor(gateway, broker, realtime, email, sellers):
    fanout = EventFanout(broker, realtime, EmailNotifier(email, sellers))
    return PaymentWebhookProcessor(
        current_domain,
        InventoryLedger(current_domain, publish=fanout.publish),
        fanout,
        gateway,
        EmailNotifier(email, sellers),
    )


def order_of(checkouts, customer_id):
    return current_domain.repository_for(Order).find_by_reference(checkouts[customer_id].order_reference)


def deliver(processor, deliveries, event_type, obj):
    payload = json.dumps({"id": f"evt_{len(deliveries):03d}", "type": event_type, "data": {"object": obj}}).encode()
    outcome = processor.handle_payload(payload, TEST_SIGNATURE)
    deliveries.append({"payload": payload, "outcome": outcome})
    return outcome


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('seller "{seller_id}" trading as "{store_name}" with payout account "{account}"'))
def seller_with_payout_account(sellers, seller_id, store_name, account):
    sellers.register_seller(seller_id, store_name, payout_account=account, contact_email=f"{seller_id}@example.com")


@given(parsers.cfparse('seller "{seller_id}" trading as "{store_name}" without a payout account'))
def seller_without_payout_account(sellers, seller_id, store_name):
    sellers.register_seller(seller_id, store_name)


@given(parsers.cfparse('product "{product_id}" from "{seller_id}" priced {price:f} with {quantity:d} in stock'))
def product_in_stock(list_product, product_id, seller_id, price, quantity):
    list_product(product_id, seller_id, price, quantity)


@given(parsers.cfparse('a coupon "{code}" for {percent:d} percent off orders of at least {minimum:f}'))
def coupon_with_minimum(create_coupon, code, percent, minimum):
    create_coupon(code, value=float(percent), min_order_amount=minimum)


@given(parsers.cfparse('customer "{customer_id}" has an empty cart'))
def empty_cart(carts, customer_id):
    carts[customer_id] = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)


@given(parsers.cfparse('customer "{customer_id}" has {quantity:d} of "{product_id}" in the cart'))
def cart_line(carts, customer_id, quantity, product_id):
    if customer_id not in carts:
        empty_cart(carts, customer_id)
    current_domain.process(
        AddToCart(cart_id=carts[customer_id], product_id=product_id, quantity=quantity),
        asynchronous=False,
    )


@given(parsers.cfparse('customer "{customer_id}" applies coupon "{code}"'))
def apply_coupon(carts, customer_id, code):
    current_domain.process(ApplyCouponToCart(cart_id=carts[customer_id], coupon_code=code), asynchronous=False)


@given(parsers.cfparse('customer "{customer_id}" has checked out'))
@when(parsers.cfparse('customer "{customer_id}" checks out'))
def checked_out(orchestrator, carts, checkouts, error, customer_id):
    try:
        checkouts[customer_id] = orchestrator.create_checkout_session(
            carts[customer_id],
            SUCCESS_URL,
            CANCEL_URL,
            Actor(customer_id=customer_id, email=f"{customer_id}@example.com"),
        )
    except MarketplaceError as exc:
        error["exc"] = exc


@given(parsers.cfparse('the gateway has confirmed payment for customer "{customer_id}"'))
@when(parsers.cfparse('the gateway confirms payment for customer "{customer_id}"'))
def payment_confirmed(processor, checkouts, deliveries, customer_id):
    created = checkouts[customer_id]
    deliver(
        processor,
        deliveries,
        "checkout.session.completed",
        {
            "id": created.session_id,
            "payment_intent": f"pi_{customer_id}",
            "metadata": {"orderReference": created.order_reference},
        },
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order of customer "{customer_id}" is {status} and {payment_status}'))
def order_state(checkouts, customer_id, status, payment_status):
    order = order_of(checkouts, customer_id)
    assert order.status == status
    assert order.payment_status == payment_status


@then(parsers.cfparse('"{product_id}" has {quantity:d} in stock'))
def stock_level(product_id, quantity):
    assert current_domain.repository_for(StockItem).find_for(product_id).quantity == quantity


@then(parsers.cfparse('seller "{seller_id}" has been told about {count:d} new order'))
def new_order_notifications(broker, seller_id, count):
    announced = [m for m in broker.messages_for("order-created") if m["vendorId"] == seller_id]
    assert len(announced) == count
