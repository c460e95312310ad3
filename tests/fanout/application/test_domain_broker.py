"""Tests for DomainBroker: publishing through the domain's configured broker."""

import threading

import pytest
from protean import current_domain

from marketplace.errors import BrokerUnavailable
from marketplace.fanout.broker import get_broker, reset_broker, set_broker
from marketplace.fanout.broker.domain_adapter import DomainBroker
from marketplace.fanout.broker.fake_adapter import FakeBroker


class _Broker:
    def __init__(self, behaviour=None):
        self.behaviour = behaviour
        self.published = []

    def publish(self, stream, message):
        if self.behaviour:
            self.behaviour()
        self.published.append((stream, message))


class _Domain:
    def __init__(self, brokers):
        self.brokers = brokers


class TestDomainBroker:
    def test_publishes_to_configured_broker(self):
        broker = _Broker()
        DomainBroker(_Domain({"default": broker})).publish("inventory-updated", {"quantity": 3})
        assert broker.published == [("inventory-updated", {"quantity": 3})]

    def test_missing_broker(self):
        with pytest.raises(BrokerUnavailable):
            DomainBroker(_Domain({}), broker_name="events").publish("inventory-updated", {})

    def test_broker_error_is_wrapped(self):
        def refuse():
            raise ConnectionError("Connection refused")

        with pytest.raises(BrokerUnavailable) as exc:
            DomainBroker(_Domain({"default": _Broker(refuse)})).publish("inventory-updated", {})
        assert "Connection refused" in exc.value.message

    def test_hung_publish_times_out(self):
        release = threading.Event()
        try:
            adapter = DomainBroker(_Domain({"default": _Broker(lambda: release.wait(5))}), timeout=0.05)
            with pytest.raises(BrokerUnavailable) as exc:
                adapter.publish("inventory-updated", {})
            assert "timed out" in exc.value.message
        finally:
            release.set()

    def test_real_domain_broker(self):
        DomainBroker(current_domain).publish("inventory-updated", {"productId": "prod-001"})


class TestBrokerRegistry:
    def test_default_is_fake(self):
        assert isinstance(get_broker(), FakeBroker)

    def test_set_and_reset(self):
        adapter = DomainBroker(current_domain)
        set_broker(adapter)
        assert get_broker() is adapter
        reset_broker()
        assert isinstance(get_broker(), FakeBroker)
