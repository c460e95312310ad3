"""Broker port: durable, at-least-once topic delivery."""

from abc import ABC, abstractmethod


class BrokerPort(ABC):
    @abstractmethod
    def publish(self, topic: str, payload: dict) -> None:
        """Publish a payload to a topic.

        Raises:
            BrokerUnavailable: the broker is not connected or did not answer in time.
        """
        ...
