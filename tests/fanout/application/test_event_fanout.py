"""Tests for EventFanout: broker first, realtime channel as fallback."""

import pytest

from marketplace.fanout.events import InventoryLow, InventoryUpdated
from marketplace.fanout.notifier import EmailNotifier
from marketplace.fanout.publisher import EventFanout


def _updated():
    return InventoryUpdated(
        seller_id="seller-a",
        product_id="prod-001",
        quantity=7,
        previous_quantity=10,
        reason="Sale",
        order_reference="order_abc",
    )


def _low():
    return InventoryLow(seller_id="seller-a", product_id="prod-001", product_name="Teapot", quantity=2, threshold=5)


@pytest.fixture()
def fanout(broker, realtime, email, sellers):
    return EventFanout(broker, realtime, EmailNotifier(email, sellers))


class TestBrokerPath:
    def test_publishes_to_topic(self, fanout, broker, realtime):
        event = _updated()
        fanout.publish(event)

        assert broker.messages_for("inventory-updated") == [event.payload()]
        assert dict(realtime.messages) == {}

    def test_publish_all(self, fanout, broker):
        fanout.publish_all([_updated(), _low()])
        assert len(broker.published) == 2


class TestFallbackPath:
    def test_broker_down_delivers_same_payload_to_seller(self, fanout, broker, realtime):
        broker.configure(should_succeed=False)
        event = _updated()

        fanout.publish(event)

        assert broker.published == []
        assert realtime.messages["seller-a"] == [{"type": "inventory_update", "data": event.payload()}]

    def test_low_stock_fallback_message_type(self, fanout, broker, realtime):
        broker.configure(should_succeed=False)
        fanout.publish(_low())
        assert realtime.messages["seller-a"][0]["type"] == "low_inventory"

    def test_both_paths_down_is_not_raised(self, fanout, broker, realtime):
        broker.configure(should_succeed=False)
        realtime.configure(should_succeed=False)

        fanout.publish(_updated())

        assert broker.published == []
        assert dict(realtime.messages) == {}


class TestLowStockEmail:
    def test_seller_is_emailed(self, fanout, sellers, email):
        sellers.register_seller("seller-a", "Alpha Goods", payout_account="acct_a", contact_email="alpha@example.com")

        fanout.publish(_low())

        [sent] = email.emails_to("alpha@example.com")
        assert sent["subject"] == "Low Inventory Alert: Teapot"
        assert "/dashboard/products/prod-001" in sent["body"]

    def test_email_sent_even_when_broker_is_down(self, fanout, broker, sellers, email):
        sellers.register_seller("seller-a", "Alpha Goods", contact_email="alpha@example.com")
        broker.configure(should_succeed=False)

        fanout.publish(_low())

        assert len(email.outbox) == 1

    def test_updates_do_not_email(self, fanout, sellers, email):
        sellers.register_seller("seller-a", "Alpha Goods", contact_email="alpha@example.com")
        fanout.publish(_updated())
        assert email.outbox == []
