"""Event fan-out with realtime fallback.

Each event goes to the durable broker topic first. When the broker is not
connected or does not answer in time, the same payload is pushed straight
to the affected seller's realtime channel so the vendor dashboard still
reflects the change. There is no retry queue: if both paths fail the
notification is lost and an error is logged. The state the event
describes is already saved by then.

Low-stock events also email the seller.
"""

import structlog

from marketplace.errors import BrokerUnavailable, RealtimeUnavailable
from marketplace.fanout.broker.port import BrokerPort
from marketplace.fanout.channel.realtime_port import RealtimePort
from marketplace.fanout.events import FanoutEvent, InventoryLow
from marketplace.fanout.notifier import EmailNotifier

logger = structlog.get_logger(__name__)


class EventFanout:
    def __init__(self, broker: BrokerPort, realtime: RealtimePort, notifier: EmailNotifier | None = None) -> None:
        self._broker = broker
        self._realtime = realtime
        self._notifier = notifier

    def publish(self, event: FanoutEvent) -> None:
        payload = event.payload()
        try:
            self._broker.publish(event.topic, payload)
            logger.info("Event published", topic=event.topic, seller_id=event.seller_id)
        except BrokerUnavailable as exc:
            logger.warning("Broker unavailable, delivering to realtime channel", topic=event.topic, error=str(exc))
            self._deliver_directly(event, payload)

        if isinstance(event, InventoryLow) and self._notifier is not None:
            self._notifier.low_stock_alert(event)

    def publish_all(self, events: list[FanoutEvent]) -> None:
        for event in events:
            self.publish(event)

    def _deliver_directly(self, event: FanoutEvent, payload: dict) -> None:
        try:
            self._realtime.publish(event.seller_id, {"type": event.message_type, "data": payload})
            logger.info("Event delivered to realtime channel", topic=event.topic, seller_id=event.seller_id)
        except RealtimeUnavailable as exc:
            logger.error(
                "Fallback delivery failed, notification lost",
                topic=event.topic,
                seller_id=event.seller_id,
                error=str(exc),
            )
