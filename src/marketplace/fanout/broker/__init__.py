"""Broker factory.

Provides get_broker() / set_broker() to swap implementations.
FakeBroker is the default; the app wires in DomainBroker at startup.
"""

from marketplace.fanout.broker.fake_adapter import FakeBroker
from marketplace.fanout.broker.port import BrokerPort

_current_broker: BrokerPort | None = None


def get_broker() -> BrokerPort:
    """Return the current broker adapter. Defaults to FakeBroker."""
    global _current_broker
    if _current_broker is None:
        _current_broker = FakeBroker()
    return _current_broker


def set_broker(broker: BrokerPort) -> None:
    global _current_broker
    _current_broker = broker


def reset_broker() -> None:
    """Reset to default (FakeBroker). Useful for testing."""
    global _current_broker
    _current_broker = None
