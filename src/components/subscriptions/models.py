"""
Subscriptions component models.

Inputs, outputs, configuration and the workflow error kind for the
double opt-in subscription flow.

State machine (per email): absent -> pending_confirmation -> confirmed,
and back to absent only through revoke (full deletion).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from src.domain.entities import SubscriberStatus

# --- Error Kind ---


class ErrorKind(Enum):
    """Closed set of workflow failure kinds."""

    VALIDATION = "validation"  # Malformed input, store never touched
    UNAUTHORIZED = "unauthorized"  # Well-formed token with no live subscriber
    UNEXPECTED = "unexpected"  # Storage, transaction or notification failure


@dataclass(frozen=True)
class WorkflowError:
    """
    A workflow failure.

    The cause, when present, is the exception that triggered an
    UNEXPECTED failure; its own __cause__ chain is kept for diagnostics.
    """

    kind: ErrorKind
    reason: str
    cause: BaseException | None = None

    @classmethod
    def validation(cls, reason: str) -> WorkflowError:
        return cls(ErrorKind.VALIDATION, reason)

    @classmethod
    def unauthorized(cls, reason: str) -> WorkflowError:
        return cls(ErrorKind.UNAUTHORIZED, reason)

    @classmethod
    def unexpected(cls, reason: str, cause: BaseException | None = None) -> WorkflowError:
        return cls(ErrorKind.UNEXPECTED, reason, cause)

    def chain(self) -> list[str]:
        """Reason followed by every message down the cause chain."""
        messages = [self.reason]
        current = self.cause
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            messages.append(f"{type(current).__name__}: {current}")
            current = current.__cause__ or current.__context__
        return messages

    def __str__(self) -> str:
        return "\n  caused by: ".join(self.chain())


class NotificationSendError(Exception):
    """The notification gateway reported a failed send."""

    def __init__(self, recipient: str, error: str | None) -> None:
        self.recipient = recipient
        self.error = error
        super().__init__(f"failed to send email to {recipient}: {error or 'unknown error'}")


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for a subscription request (raw form fields)."""

    email: str
    name: str


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming a subscription."""

    token: str


@dataclass(frozen=True)
class RevokeInput:
    """Input for revoking a subscription."""

    token: str


# --- Output Models ---


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from a subscription attempt."""

    success: bool
    subscriber_id: UUID | None = None
    status: SubscriberStatus | None = None
    resent: bool = False  # True when the email was already on record
    error: WorkflowError | None = None


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from a confirmation attempt."""

    success: bool
    subscriber_id: UUID | None = None
    error: WorkflowError | None = None


@dataclass(frozen=True)
class RevokeOutput:
    """Output from a revocation attempt."""

    success: bool
    subscriber_id: UUID | None = None
    error: WorkflowError | None = None


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionConfig:
    """Subscription workflow configuration."""

    base_url: str = "http://127.0.0.1:8000"
    site_name: str = "Mailing List"
    confirm_path: str = "/subscriptions/confirm"
    revoke_path: str = "/subscriptions/revoke"
