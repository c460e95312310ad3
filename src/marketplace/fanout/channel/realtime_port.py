"""Realtime channel port: best-effort push to a seller's dashboard."""

from abc import ABC, abstractmethod


class RealtimePort(ABC):
    @abstractmethod
    def publish(self, seller_id: str, message: dict) -> None:
        """Push ``{"type": ..., "data": ...}`` to everyone watching the seller's dashboard.

        Raises:
            RealtimeUnavailable: the message could not be delivered.
        """
        ...
