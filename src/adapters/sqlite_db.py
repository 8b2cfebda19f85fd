"""
SQLite Subscription Store Adapter.

Implements SubscriptionStorePort and SubscriptionTransactionPort using
SQLite. Designed to be Postgres-compatible (uses standard SQL patterns).

Every read opens its own short-lived connection; a transaction owns one
connection for its whole lifetime. No connection is shared between
concurrently handled requests, so isolation comes from SQLite's own
locking (write transactions start with BEGIN IMMEDIATE).
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from types import TracebackType
from typing import Any
from uuid import UUID, uuid4

from src.core.ports.db import StoreError, UniqueViolationError
from src.domain.entities import (
    PENDING_CONFIRMATION,
    VALID_TRANSITIONS,
    Subscriber,
    SubscriberStatus,
    can_transition,
)
from src.domain.identity import SubscriberEmail, SubscriberName
from src.domain.tokens import SubscriptionToken

DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise driver errors as store errors, keeping the driver error as cause."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e):
            raise UniqueViolationError(operation) from e
        raise StoreError(operation) from e
    except sqlite3.Error as e:
        raise StoreError(operation) from e


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        busy_timeout_seconds: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ):
        self.db_path = db_path
        self.busy_timeout_seconds = busy_timeout_seconds
        self._external_conn = connection

    def _connect(self, isolation_level: str | None = "") -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout_seconds,
            isolation_level=isolation_level,
            check_same_thread=False,
        )
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return self._connect()

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Transaction
# -----------------------------------------------------------------------------


class SQLiteSubscriptionTransaction(SQLiteRepoBase):
    """
    One write transaction over a dedicated connection.

    Rolls back on every exit path that is not preceded by commit().
    """

    def __init__(
        self,
        db_path: str,
        busy_timeout_seconds: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ):
        super().__init__(db_path, busy_timeout_seconds=busy_timeout_seconds)
        self._conn: sqlite3.Connection | None = None
        self._finished = False

    def __enter__(self) -> SQLiteSubscriptionTransaction:
        with translate_errors("opening a transaction"):
            # Autocommit mode so BEGIN/COMMIT/ROLLBACK are under our control.
            self._conn = self._connect(isolation_level=None)
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error:
                self._conn.close()
                self._conn = None
                raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if not self._finished:
                self.rollback()
        finally:
            if self._conn:
                self._conn.close()
                self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None or self._finished:
            raise StoreError("using a transaction", "transaction is not active")
        return self._conn

    def insert_subscriber(
        self,
        email: SubscriberEmail,
        name: SubscriberName,
        subscribed_at: datetime | None = None,
    ) -> UUID:
        subscriber_id = uuid4()
        with translate_errors("inserting a new subscriber"):
            self.conn.execute(
                """
                INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(subscriber_id),
                    str(email),
                    str(name),
                    (subscribed_at or datetime.now(UTC)).isoformat(),
                    PENDING_CONFIRMATION,
                ),
            )
        return subscriber_id

    def store_token(self, subscriber_id: UUID, token: SubscriptionToken) -> None:
        with translate_errors("storing a subscription token"):
            self.conn.execute(
                """
                INSERT INTO subscription_tokens (subscriber_id, subscription_token)
                VALUES (?, ?)
                """,
                (str(subscriber_id), str(token)),
            )

    def delete_token(self, subscriber_id: UUID) -> None:
        with translate_errors("deleting a subscription token"):
            self.conn.execute(
                "DELETE FROM subscription_tokens WHERE subscriber_id = ?",
                (str(subscriber_id),),
            )

    def delete_subscriber(self, subscriber_id: UUID) -> None:
        with translate_errors("deleting subscriber"):
            self.conn.execute("DELETE FROM subscriptions WHERE id = ?", (str(subscriber_id),))

    def commit(self) -> None:
        with translate_errors("committing a transaction"):
            self.conn.execute("COMMIT")
        self._finished = True

    def rollback(self) -> None:
        if self._conn is None or self._finished:
            return
        self._finished = True
        with translate_errors("rolling back a transaction"):
            self._conn.execute("ROLLBACK")


# -----------------------------------------------------------------------------
# Subscription Store
# -----------------------------------------------------------------------------


class SQLiteSubscriptionStore(SQLiteRepoBase):
    """SQLite implementation of SubscriptionStorePort."""

    def find_by_email(
        self, email: SubscriberEmail
    ) -> tuple[Subscriber, SubscriptionToken] | None:
        conn = self._get_conn()
        try:
            with translate_errors("checking for subscriber existence"):
                row = conn.execute(
                    """
                    SELECT s.id, s.email, s.name, s.subscribed_at, s.status,
                           t.subscription_token
                    FROM subscriptions s
                    JOIN subscription_tokens t ON t.subscriber_id = s.id
                    WHERE s.email = ?
                    """,
                    (str(email),),
                ).fetchone()
            if not row:
                return None
            return self._map_row(row), SubscriptionToken(row["subscription_token"])
        finally:
            if self._should_close():
                conn.close()

    def find_subscriber_id_by_token(self, token: SubscriptionToken) -> UUID | None:
        conn = self._get_conn()
        try:
            with translate_errors("retrieving the subscriber id for a token"):
                row = conn.execute(
                    "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                    (str(token),),
                ).fetchone()
            return UUID(row["subscriber_id"]) if row else None
        finally:
            if self._should_close():
                conn.close()

    def update_status(self, subscriber_id: UUID, status: SubscriberStatus) -> bool:
        # Only rows whose current status may move to `status` are matched.
        sources = [s for s in VALID_TRANSITIONS if can_transition(s, status)]
        placeholders = ", ".join("?" for _ in sources)
        conn = self._get_conn()
        try:
            with translate_errors("updating subscriber status"):
                cursor = conn.execute(
                    "UPDATE subscriptions SET status = ? "
                    f"WHERE id = ? AND status IN ({placeholders})",
                    (status, str(subscriber_id), *sources),
                )
                if self._should_close():
                    conn.commit()
            return cursor.rowcount > 0
        finally:
            if self._should_close():
                conn.close()

    def delete_subscriber_and_token(self, subscriber_id: UUID) -> None:
        with self.transaction() as tx:
            # Token first: it references the subscriber row.
            tx.delete_token(subscriber_id)
            tx.delete_subscriber(subscriber_id)
            tx.commit()

    def transaction(self) -> SQLiteSubscriptionTransaction:
        return SQLiteSubscriptionTransaction(
            self.db_path, busy_timeout_seconds=self.busy_timeout_seconds
        )

    def ping(self) -> None:
        conn = self._get_conn()
        try:
            with translate_errors("pinging the database"):
                conn.execute("SELECT 1 FROM subscriptions LIMIT 1").fetchall()
        finally:
            if self._should_close():
                conn.close()

    # --- Inspection helpers (admin and tests) ---

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        conn = self._get_conn()
        try:
            with translate_errors("retrieving a subscriber"):
                row = conn.execute(
                    "SELECT * FROM subscriptions WHERE id = ?", (str(subscriber_id),)
                ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def count_subscribers(self) -> int:
        return self._count("subscriptions")

    def count_tokens(self) -> int:
        return self._count("subscription_tokens")

    def _count(self, table: str) -> int:
        conn = self._get_conn()
        try:
            with translate_errors(f"counting {table}"):
                row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
            return int(row["n"])
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            subscribed_at=parse_dt(row["subscribed_at"]),
            status=row["status"],
        )
