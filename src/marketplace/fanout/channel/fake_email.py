"""In-memory mail provider: keeps every message in an outbox."""

from uuid import uuid4

from marketplace.fanout.channel.email_port import EmailPort


class FakeEmailAdapter(EmailPort):
    def __init__(self) -> None:
        self.outbox: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message = {"message_id": f"msg-{uuid4().hex[:12]}", "to": to, "subject": subject, "body": body}
        self.outbox.append(message)
        return {"message_id": message["message_id"], "status": "sent"}

    def emails_to(self, address: str) -> list[dict]:
        return [message for message in self.outbox if message["to"] == address]

    def reset(self) -> None:
        self.outbox.clear()
        self.configure()
