"""
SQLite Database Adapter.

Implements the contacts and subscriber repository ports using SQLite.
Driver exceptions never leave this module: unique/check violations are
raised as IntegrityViolation, anything else as DatastoreError.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from cmsmail.components.contacts.models import Contact
from cmsmail.components.subscription.models import Subscriber, Subscription
from cmsmail.core.errors import DatastoreError, IntegrityViolation

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory: column name -> value."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_subscription(s: str | None) -> Subscription | None:
    """Parse a stored subscription code."""
    return Subscription(s) if s is not None else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Connection handling shared by the repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """The unit-of-work connection when bound, else a fresh one."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Standalone repos own (commit and close) their connection."""
        return self._external_conn is None

    @contextmanager
    def _session(self, operation: str) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection for one repository call.

        Standalone repos commit on success; repos bound to a unit of work
        leave commit/rollback to the owner of the transaction.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise DatastoreError(operation, e) from e

        try:
            yield conn
            if self._should_close():
                conn.commit()
        except sqlite3.IntegrityError as e:
            if self._should_close():
                conn.rollback()
            raise IntegrityViolation(operation, e) from e
        except sqlite3.Error as e:
            if self._should_close():
                conn.rollback()
            raise DatastoreError(operation, e) from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Contacts Repository
# -----------------------------------------------------------------------------

# Entity field -> column; update_field only ever writes these columns
_CONTACT_COLUMNS: dict[str, str] = {
    "recipient_en": "recipient",
    "recipient_fa": "recipient_fa",
    "email": "address",
}


class SQLiteContactRepo(SQLiteRepoBase):
    """SQLite implementation of ContactRepoPort."""

    def get(self, recipient_en: str) -> Contact | None:
        with self._session("contacts.get") as conn:
            row = conn.execute(
                "SELECT * FROM contacts WHERE recipient = ?", (recipient_en,)
            ).fetchone()
            return self._map_row(row) if row else None

    def find_by_recipient_fa(self, recipient_fa: str) -> list[Contact]:
        with self._session("contacts.find_by_recipient_fa") as conn:
            rows = conn.execute(
                "SELECT * FROM contacts WHERE recipient_fa = ? ORDER BY recipient",
                (recipient_fa,),
            ).fetchall()
            return [self._map_row(r) for r in rows]

    def insert(self, contact: Contact) -> Contact:
        with self._session("contacts.insert") as conn:
            conn.execute(
                """
                INSERT INTO contacts (recipient, recipient_fa, address, is_default)
                VALUES (?, ?, ?, ?)
                """,
                (
                    contact.recipient_en,
                    contact.recipient_fa,
                    contact.email,
                    1 if contact.is_default else 0,
                ),
            )
            return contact

    def update_field(self, recipient_en: str, field: str, value: str) -> None:
        column = _CONTACT_COLUMNS.get(field)
        if column is None:
            raise DatastoreError(f"contacts.update_field({field})")

        with self._session("contacts.update_field") as conn:
            conn.execute(
                f"UPDATE contacts SET {column} = ? WHERE recipient = ?",
                (value, recipient_en),
            )

    def set_default(self, recipient_en: str, is_default: bool) -> None:
        with self._session("contacts.set_default") as conn:
            conn.execute(
                "UPDATE contacts SET is_default = ? WHERE recipient = ?",
                (1 if is_default else 0, recipient_en),
            )

    def clear_defaults(self) -> None:
        with self._session("contacts.clear_defaults") as conn:
            conn.execute("UPDATE contacts SET is_default = 0 WHERE is_default = 1")

    def delete(self, recipient_en: str) -> None:
        with self._session("contacts.delete") as conn:
            conn.execute("DELETE FROM contacts WHERE recipient = ?", (recipient_en,))

    def list_all(self) -> list[Contact]:
        with self._session("contacts.list_all") as conn:
            rows = conn.execute("SELECT * FROM contacts ORDER BY recipient ASC").fetchall()
            return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> Contact:
        return Contact(
            recipient_en=row["recipient"],
            recipient_fa=row["recipient_fa"],
            email=row["address"],
            is_default=bool(row["is_default"]),
        )


# -----------------------------------------------------------------------------
# Subscriber Repository
# -----------------------------------------------------------------------------


class SQLiteSubscriberRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriberRepoPort."""

    def get_by_inbox(self, inbox: str) -> Subscriber | None:
        with self._session("subscribers.get_by_inbox") as conn:
            row = conn.execute(
                "SELECT * FROM subscribers WHERE inbox = ?", (inbox,)
            ).fetchone()
            return self._map_row(row) if row else None

    def get_by_uuid(self, uuid: str) -> Subscriber | None:
        with self._session("subscribers.get_by_uuid") as conn:
            row = conn.execute(
                "SELECT * FROM subscribers WHERE uuid = ?", (uuid,)
            ).fetchone()
            return self._map_row(row) if row else None

    def insert(self, subscriber: Subscriber) -> Subscriber:
        with self._session("subscribers.insert") as conn:
            conn.execute(
                """
                INSERT INTO subscribers (inbox, uuid, subscription, pending_subscription)
                VALUES (?, ?, ?, ?)
                """,
                (
                    subscriber.inbox,
                    subscriber.uuid,
                    subscriber.subscription.value,
                    subscriber.pending_subscription.value
                    if subscriber.pending_subscription
                    else None,
                ),
            )
            return subscriber

    def update_pending(self, inbox: str, pending: Subscription | None) -> None:
        with self._session("subscribers.update_pending") as conn:
            conn.execute(
                "UPDATE subscribers SET pending_subscription = ? WHERE inbox = ?",
                (pending.value if pending else None, inbox),
            )

    def update_subscription(
        self,
        inbox: str,
        subscription: Subscription,
        pending: Subscription | None,
    ) -> None:
        with self._session("subscribers.update_subscription") as conn:
            conn.execute(
                """
                UPDATE subscribers SET subscription = ?, pending_subscription = ?
                WHERE inbox = ?
                """,
                (subscription.value, pending.value if pending else None, inbox),
            )

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            inbox=row["inbox"],
            uuid=row["uuid"],
            subscription=Subscription(row["subscription"]),
            pending_subscription=parse_subscription(row["pending_subscription"]),
        )


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    One SQLite transaction shared by the contact and subscriber repos.

    The write lock is taken up front (BEGIN IMMEDIATE) so read-then-write
    sequences such as "check duplicate, then insert" cannot interleave.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

        self._contacts: SQLiteContactRepo | None = None
        self._subscribers: SQLiteSubscriberRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        try:
            # One request owns the connection, possibly across threadpool workers
            self._conn = sqlite3.connect(
                self.db_path, isolation_level=None, check_same_thread=False
            )
            self._conn.row_factory = dict_factory
            self._conn.execute("PRAGMA foreign_keys = ON;")
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            if self._conn:
                self._conn.close()
                self._conn = None
            raise DatastoreError("begin transaction", e) from e
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._conn:
            # Anything not explicitly committed is discarded
            if self._conn.in_transaction:
                self.rollback()
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn and self._conn.in_transaction:
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                raise DatastoreError("commit", e) from e

    def rollback(self) -> None:
        if self._conn and self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    @property
    def contacts(self) -> SQLiteContactRepo:
        if self._contacts is None:
            self._contacts = SQLiteContactRepo(self.db_path, self._conn)
        return self._contacts

    @property
    def subscribers(self) -> SQLiteSubscriberRepo:
        if self._subscribers is None:
            self._subscribers = SQLiteSubscriberRepo(self.db_path, self._conn)
        return self._subscribers
