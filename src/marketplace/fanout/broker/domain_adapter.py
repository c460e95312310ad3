"""Broker adapter backed by the Protean domain's configured broker.

The inline broker is used in development and tests; production config
switches the domain to Redis. Publishing runs on a worker thread so a
hung connection is cut off after ``timeout`` seconds.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import structlog

from marketplace.errors import BrokerUnavailable
from marketplace.fanout.broker.port import BrokerPort

logger = structlog.get_logger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="broker-publish")


class DomainBroker(BrokerPort):
    def __init__(self, domain, broker_name: str = "default", timeout: float = 2.0) -> None:
        self._domain = domain
        self._broker_name = broker_name
        self._timeout = timeout

    def publish(self, topic: str, payload: dict) -> None:
        try:
            broker = self._domain.brokers[self._broker_name]
        except KeyError as exc:
            raise BrokerUnavailable(f"Broker '{self._broker_name}' is not configured") from exc

        future = _executor.submit(broker.publish, topic, payload)
        try:
            future.result(timeout=self._timeout)
        except FutureTimeout as exc:
            future.cancel()
            raise BrokerUnavailable(f"Broker publish to {topic} timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise BrokerUnavailable(f"Broker publish to {topic} failed: {exc}") from exc

        logger.debug("Published to broker", topic=topic)
