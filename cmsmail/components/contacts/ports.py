"""
Contacts component ports.

Protocol interfaces for contact persistence. Every method may raise
DatastoreError; multi-call operations are expected to run inside a single
transaction owned by the caller.
"""

from __future__ import annotations

from typing import Protocol

from cmsmail.components.contacts.models import Contact


class ContactRepoPort(Protocol):
    """Repository interface for contacts."""

    def get(self, recipient_en: str) -> Contact | None:
        """Exact-match lookup by key."""
        ...

    def find_by_recipient_fa(self, recipient_fa: str) -> list[Contact]:
        """Exact-match lookup by Persian recipient name."""
        ...

    def insert(self, contact: Contact) -> Contact:
        """Insert a new row. Raises IntegrityViolation on a duplicate key."""
        ...

    def update_field(self, recipient_en: str, field: str, value: str) -> None:
        """Update one named field of the row with the given key."""
        ...

    def set_default(self, recipient_en: str, is_default: bool) -> None:
        """Set the default flag of one row."""
        ...

    def clear_defaults(self) -> None:
        """Clear the default flag on all rows."""
        ...

    def delete(self, recipient_en: str) -> None:
        """Delete the row with the given key."""
        ...

    def list_all(self) -> list[Contact]:
        """All rows ordered by recipient_en ascending."""
        ...
