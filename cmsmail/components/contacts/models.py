"""
Contacts component models.

Data models for the admin contact-list editor: the recipient table behind
the "contact us" form.

Invariants:
- recipient_en is the unique key (case-sensitive exact match)
- At most one contact has is_default = True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

# --- Entity ---


@dataclass
class Contact:
    """
    Contact recipient entity.

    recipient_en doubles as the row key.
    """

    recipient_en: str
    recipient_fa: str
    email: str
    is_default: bool = False


ContactField = Literal["recipient_en", "recipient_fa", "email"]

EDITABLE_FIELDS: frozenset[str] = frozenset({"recipient_en", "recipient_fa", "email"})


# --- Erase dialog state machine ---


class EraseState(Enum):
    """
    Erase dialog state.

    State transitions:
    - idle → confirm_pending (erase requested, prompt shown)
    - confirm_pending → idle (cancel: no change / ok: row deleted)
    """

    IDLE = "idle"
    CONFIRM_PENDING = "confirm_pending"


class EraseButton(Enum):
    """Answer to the erase confirmation prompt."""

    OK = "ok"
    CANCEL = "cancel"


@dataclass(frozen=True)
class EraseConfirmation:
    """
    Short-lived confirmation state for a pending erase.

    Keyed by action + target key; travels with the request (signed by the
    HTTP layer) instead of living in server-side dialog state.
    """

    target_key: str
    question: str
    action: str = "erase"
    state: EraseState = EraseState.CONFIRM_PENDING


# --- Input Models ---


@dataclass(frozen=True)
class AddContactInput:
    """Input for adding a contact."""

    recipient_en: str
    recipient_fa: str
    email: str
    is_default: bool = False


@dataclass(frozen=True)
class UpdateFieldInput:
    """Input for an inline edit of a single field."""

    key: str
    field: str
    value: str


@dataclass(frozen=True)
class SetDefaultInput:
    """Input for toggling the default recipient flag."""

    key: str
    checked: bool


@dataclass(frozen=True)
class DeleteContactInput:
    """Input for deleting a contact."""

    key: str


@dataclass(frozen=True)
class BeginEraseInput:
    """Input for opening the erase confirmation prompt."""

    key: str
    language: str = "en"  # Client language; "fa" names the Persian recipient


@dataclass(frozen=True)
class ResolveEraseInput:
    """Input for answering the erase confirmation prompt."""

    confirmation: EraseConfirmation
    button: EraseButton


# --- Output Models ---


@dataclass(frozen=True)
class ValidationError:
    """Validation or operation error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ContactOperationOutput:
    """Output from a contact mutation."""

    success: bool
    contact: Contact | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ContactListOutput:
    """Output from listing contacts."""

    contacts: list[Contact]
    total: int
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class EraseOutput:
    """Output from an erase dialog step."""

    success: bool
    state: EraseState = EraseState.IDLE
    confirmation: EraseConfirmation | None = None
    deleted: bool = False
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class ContactsConfig:
    """Field validation bounds, taken from rules.yaml."""

    recipient_name_min: int = 1
    recipient_name_max: int = 64
    email_pattern: str = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


# --- Error Types ---


class ContactsError(Exception):
    """Base contacts error."""

    pass


class DuplicateKeyError(ContactsError):
    """Another contact already holds the value of a unique field."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"A contact with {field} '{value}' already exists")


class NotFoundError(ContactsError):
    """No contact with the given key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Contact '{key}' not found")
