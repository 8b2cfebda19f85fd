"""
Notification gateway interface.

Sends the one transactional email of the subscription flow: the message
carrying the confirmation and revocation links.

Adapters:
- DevEmailAdapter: records and logs, never delivers (local runs, tests)
- HttpEmailAdapter: posts to an HTTP email API within a bounded timeout

Delivery is best-effort. There is no retry or outbox behind this port;
a failed send is reported to the caller through EmailResult.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    SENT = "sent"
    SKIPPED = "skipped"  # Accepted by a non-delivering adapter
    FAILED = "failed"


@dataclass(frozen=True)
class EmailResult:
    """Outcome of one send attempt."""

    status: EmailStatus
    recipient: str
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None

    @property
    def is_failure(self) -> bool:
        return self.status is EmailStatus.FAILED

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(EmailStatus.SENT, recipient, message_id, sent_at=datetime.now(UTC))

    @classmethod
    def skipped(
        cls, recipient: str, message_id: str | None = None, reason: str = "Dev mode"
    ) -> EmailResult:
        return cls(EmailStatus.SKIPPED, recipient, message_id, error=reason)

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(EmailStatus.FAILED, recipient, error=error)


class EmailPort(Protocol):
    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        """
        Send one email with both an HTML and a plain text body.

        Blocks for at most the adapter's timeout. Must not raise: failures
        come back as EmailResult.failed.
        """
        ...
