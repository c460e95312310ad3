"""Outgoing email channel."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        """Hand one message to the mail provider.

        Returns ``{"message_id", "status"}`` where status is ``sent`` or
        ``failed``; failed results also carry ``error``. Never raises for
        delivery problems.
        """
