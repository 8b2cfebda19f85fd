"""
Subscription store interfaces.

Protocol-based interfaces for subscriber and token persistence.
Implementations: SQLite (now), Postgres (future).

Invariants:
- A live subscriber always has exactly one token row
- No token row exists without its subscriber
- Email is unique among live subscribers (enforced by the storage layer)

Both tables are only ever mutated together inside one transaction.
"""

from __future__ import annotations

from types import TracebackType
from typing import Protocol
from uuid import UUID

from src.domain.entities import Subscriber, SubscriberStatus
from src.domain.identity import SubscriberEmail, SubscriberName
from src.domain.tokens import SubscriptionToken

# -----------------------------------------------------------------------------
# Transaction
# -----------------------------------------------------------------------------


class SubscriptionTransactionPort(Protocol):
    """
    A single write transaction.

    Used as a context manager; leaving the block without an explicit
    commit() rolls back, whatever the exit path.
    """

    def __enter__(self) -> SubscriptionTransactionPort: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    def insert_subscriber(self, email: SubscriberEmail, name: SubscriberName) -> UUID:
        """
        Insert a subscriber in pending_confirmation status.

        Raises:
            UniqueViolationError: If the email is already on record
        """
        ...

    def store_token(self, subscriber_id: UUID, token: SubscriptionToken) -> None:
        """
        Associate a token with a subscriber.

        Raises:
            UniqueViolationError: If the subscriber already has a token
        """
        ...

    def delete_token(self, subscriber_id: UUID) -> None:
        """Delete the token row of a subscriber."""
        ...

    def delete_subscriber(self, subscriber_id: UUID) -> None:
        """Delete a subscriber row (its token must be gone already)."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class SubscriptionStorePort(Protocol):
    """
    Repository for subscribers and their subscription tokens.

    State machine: pending_confirmation -> confirmed -> (deleted)
    """

    def find_by_email(
        self, email: SubscriberEmail
    ) -> tuple[Subscriber, SubscriptionToken] | None:
        """Join a subscriber with its token, or None if the email is not on record."""
        ...

    def find_subscriber_id_by_token(self, token: SubscriptionToken) -> UUID | None:
        """Resolve a token to its subscriber id."""
        ...

    def update_status(self, subscriber_id: UUID, status: SubscriberStatus) -> bool:
        """
        Move a subscriber to `status` if the status machine allows it.

        Re-applying the current status counts as a match. Returns False when
        no row matched: the subscriber is gone, or the move is backwards
        (the stored status is then left untouched).
        """
        ...

    def delete_subscriber_and_token(self, subscriber_id: UUID) -> None:
        """Delete the token then the subscriber, atomically."""
        ...

    def transaction(self) -> SubscriptionTransactionPort:
        """Open a write transaction."""
        ...

    def ping(self) -> None:
        """Raise StoreError if the store is unreachable."""
        ...


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class StoreError(Exception):
    """Storage or transaction failure. The driver error is chained as __cause__."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        super().__init__(message or f"a database error was encountered while {operation}")


class UniqueViolationError(StoreError):
    """A uniqueness constraint rejected an insert."""
