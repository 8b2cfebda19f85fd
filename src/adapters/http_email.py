"""
HTTP Email Adapter.

Sends transactional email through a Postmark-style HTTP API:
POST {base_url}/email with a JSON body and a server token header.

The call blocks for at most the configured timeout and is never retried
here. Failures come back as EmailResult.failed; the adapter does not raise.
"""

from __future__ import annotations

import logging

import httpx

from src.core.ports.email import EmailResult
from src.domain.identity import SubscriberEmail

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-Postmark-Server-Token"


class HttpEmailAdapter:
    """EmailPort implementation backed by httpx."""

    def __init__(
        self,
        base_url: str,
        sender: SubscriberEmail,
        authorization_token: str,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.sender = sender
        self._authorization_token = authorization_token
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        payload = {
            "From": str(self.sender),
            "To": recipient,
            "Subject": subject,
            "HtmlBody": body_html,
            "TextBody": body_text,
        }

        try:
            response = self._client.post(
                f"{self.base_url}/email",
                json=payload,
                headers={AUTH_HEADER: self._authorization_token},
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Email API timed out sending to %s", recipient)
            return EmailResult.failed(recipient, "Email API request timed out")
        except httpx.HTTPStatusError as e:
            logger.warning("Email API returned %s for %s", e.response.status_code, recipient)
            return EmailResult.failed(
                recipient, f"Email API returned status {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.warning("Email API request failed for %s: %s", recipient, e)
            return EmailResult.failed(recipient, f"Email API request failed: {e}")

        message_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            if isinstance(data, dict):
                message_id = data.get("MessageID")

        return EmailResult.success(recipient, message_id=message_id)

    def close(self) -> None:
        self._client.close()
