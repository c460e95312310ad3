"""Fake realtime adapter: records pushed messages per seller."""

from collections import defaultdict

from marketplace.errors import RealtimeUnavailable
from marketplace.fanout.channel.realtime_port import RealtimePort


class FakeRealtimeAdapter(RealtimePort):
    def __init__(self) -> None:
        self.messages: dict[str, list[dict]] = defaultdict(list)
        self.should_succeed = True
        self.failure_reason = "Realtime channel unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Realtime channel unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def publish(self, seller_id: str, message: dict) -> None:
        if not self.should_succeed:
            raise RealtimeUnavailable(self.failure_reason)
        self.messages[str(seller_id)].append(message)

    def reset(self) -> None:
        self.messages.clear()
        self.should_succeed = True
        self.failure_reason = "Realtime channel unavailable"
