import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests():
    """Clean up storage and collaborator fakes after every test."""
    yield

    from protean import current_domain

    from marketplace.catalogue import reset_catalogue
    from marketplace.fanout.broker import reset_broker
    from marketplace.fanout.channel import reset_channels
    from marketplace.payments.gateway import reset_gateway

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()

    reset_catalogue()
    reset_gateway()
    reset_broker()
    reset_channels()


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalogue():
    from marketplace.catalogue import get_catalogue

    return get_catalogue()


@pytest.fixture()
def sellers():
    from marketplace.catalogue import get_seller_directory

    return get_seller_directory()


@pytest.fixture()
def gateway():
    from marketplace.payments.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def broker():
    from marketplace.fanout.broker import get_broker

    return get_broker()


@pytest.fixture()
def realtime():
    from marketplace.fanout.channel import get_realtime

    return get_realtime()


@pytest.fixture()
def email():
    from marketplace.fanout.channel import get_email

    return get_email()


# ---------------------------------------------------------------------------
# Scenario builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def list_product(catalogue):
    """Publish a product in the catalogue and register its stock."""
    from protean import current_domain

    from marketplace.inventory.registration import RegisterStock

    def _list(product_id, seller_id, price, quantity, name=None, variant_id=None, threshold=None):
        name = name or f"Product {product_id}"
        catalogue.register_product(product_id, name, price, seller_id, variant_id=variant_id)
        return current_domain.process(
            RegisterStock(
                product_id=product_id,
                variant_id=variant_id,
                seller_id=seller_id,
                name=name,
                quantity=quantity,
                low_stock_threshold=threshold,
            ),
            asynchronous=False,
        )

    return _list


@pytest.fixture()
def fill_cart():
    """Create a cart for the owner and add ``(product_id, quantity)`` lines."""
    from protean import current_domain

    from marketplace.cart.items import AddToCart
    from marketplace.cart.management import CreateCart

    def _fill(lines, customer_id=None, session_id=None):
        if not customer_id and not session_id:
            session_id = "sess-guest-001"
        cart_id = current_domain.process(
            CreateCart(customer_id=customer_id, session_id=session_id),
            asynchronous=False,
        )
        for product_id, quantity in lines:
            current_domain.process(
                AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )
        return cart_id

    return _fill


@pytest.fixture()
def create_coupon():
    from protean import current_domain

    from marketplace.coupon.management import CreateCoupon

    def _create(code, kind="Percentage", value=10.0, **options):
        return current_domain.process(
            CreateCoupon(code=code, kind=kind, value=value, **options),
            asynchronous=False,
        )

    return _create


@pytest.fixture()
def orchestrator(catalogue, sellers, gateway):
    from protean import current_domain

    from marketplace.checkout.orchestrator import CheckoutOrchestrator
    from marketplace.checkout.validation import CartValidator

    return CheckoutOrchestrator(current_domain, CartValidator(current_domain, catalogue), gateway, sellers)
