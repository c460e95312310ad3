"""Fake broker: records published messages for test assertions."""

from marketplace.errors import BrokerUnavailable
from marketplace.fanout.broker.port import BrokerPort


class FakeBroker(BrokerPort):
    def __init__(self) -> None:
        self.published: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Broker not connected"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Broker not connected") -> None:
        """Configure the fake broker behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def publish(self, topic: str, payload: dict) -> None:
        if not self.should_succeed:
            raise BrokerUnavailable(self.failure_reason)
        self.published.append({"topic": topic, "payload": payload})

    def messages_for(self, topic: str) -> list[dict]:
        return [record["payload"] for record in self.published if record["topic"] == topic]

    def reset(self) -> None:
        self.published.clear()
        self.should_succeed = True
        self.failure_reason = "Broker not connected"
