"""
Dev Email Adapter.

Records emails in memory and logs a one-line summary instead of
delivering them. Selected when no email API base URL is configured,
and used by the tests to read the links a subscriber would receive.

Sends return SKIPPED, or FAILED when fail_sends is set (to exercise a
send failure after the subscriber has been stored).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailResult

logger = logging.getLogger(__name__)

SIMULATED_FAILURE = "Dev mode - simulated send failure"


@dataclass(frozen=True)
class SentEmail:
    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """EmailPort implementation that never leaves the process."""

    sent_emails: list[SentEmail] = field(default_factory=list)
    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100
    fail_sends: bool = False

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        if self.fail_sends:
            logger.log(self.log_level, "EMAIL (dev): simulated failure, To=%s", recipient)
            return EmailResult.failed(recipient, SIMULATED_FAILURE)

        email = SentEmail(
            id=f"dev-{uuid4().hex[:12]}",
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
            logged_at=datetime.now(UTC),
        )
        self.sent_emails.append(email)
        logger.log(self.log_level, self._summary(email))

        return EmailResult.skipped(
            recipient, message_id=email.id, reason="Dev mode - email logged, not sent"
        )

    def _summary(self, email: SentEmail) -> str:
        parts = [f"EMAIL (dev): To={email.recipient}", f"Subject={email.subject}"]
        if self.log_body and email.body_html:
            preview = email.body_html[: self.body_preview_length]
            if len(email.body_html) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")
        parts.append(f"MessageID={email.id}")
        return ", ".join(parts)

    # --- Test helpers ---

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)


def create_dev_email_adapter(
    log_level: int = logging.INFO,
    log_body: bool = True,
    body_preview_length: int = 100,
) -> DevEmailAdapter:
    return DevEmailAdapter(
        log_level=log_level,
        log_body=log_body,
        body_preview_length=body_preview_length,
    )
