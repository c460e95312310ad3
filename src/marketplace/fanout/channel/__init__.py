"""Channel adapter registry for the realtime dashboard push and email.

Fake adapters are the default. A deployment wires in the websocket
gateway and mail provider clients with set_realtime() / set_email().
"""

from marketplace.fanout.channel.email_port import EmailPort
from marketplace.fanout.channel.fake_email import FakeEmailAdapter
from marketplace.fanout.channel.fake_realtime import FakeRealtimeAdapter
from marketplace.fanout.channel.realtime_port import RealtimePort

_realtime: RealtimePort | None = None
_email: EmailPort | None = None


def get_realtime() -> RealtimePort:
    global _realtime
    if _realtime is None:
        _realtime = FakeRealtimeAdapter()
    return _realtime


def set_realtime(adapter: RealtimePort) -> None:
    global _realtime
    _realtime = adapter


def get_email() -> EmailPort:
    global _email
    if _email is None:
        _email = FakeEmailAdapter()
    return _email


def set_email(adapter: EmailPort) -> None:
    global _email
    _email = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    global _realtime, _email
    _realtime = None
    _email = None
