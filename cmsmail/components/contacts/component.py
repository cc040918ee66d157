"""
Contacts component.

Functional core for the admin contact-list editor: add, inline edit,
default-recipient toggle, erase with confirmation, ordered listing.

Key behaviors:
- recipient_en is unique (case-sensitive exact match)
- recipient_fa may not be shared by two rows when edited inline
- Setting a default clears every other default first
- Delete and SetDefault on an unknown key are silent no-ops
- Field validation happens before any repository call

Invariants:
- At most one contact has is_default = True after any operation
- A failed operation leaves the table unchanged (caller rolls back)
"""

from __future__ import annotations

import logging
import re

from cmsmail.components.contacts.models import (
    EDITABLE_FIELDS,
    AddContactInput,
    BeginEraseInput,
    Contact,
    ContactListOutput,
    ContactOperationOutput,
    ContactsConfig,
    DeleteContactInput,
    DuplicateKeyError,
    EraseButton,
    EraseConfirmation,
    EraseOutput,
    EraseState,
    NotFoundError,
    ResolveEraseInput,
    SetDefaultInput,
    UpdateFieldInput,
    ValidationError,
)
from cmsmail.components.contacts.ports import ContactRepoPort
from cmsmail.core.errors import GENERIC_ERROR_MESSAGE, DatastoreError, IntegrityViolation

logger = logging.getLogger(__name__)


# --- Validation (Functional Core) ---


def validate_recipient_name(
    value: str,
    field: str,
    config: ContactsConfig,
) -> list[ValidationError]:
    """Check a trimmed recipient name against the configured length bounds."""
    if not value:
        return [ValidationError("REQUIRED", "This field is required", field)]
    if not config.recipient_name_min <= len(value) <= config.recipient_name_max:
        return [
            ValidationError(
                "INVALID_LENGTH",
                f"Must be between {config.recipient_name_min} and "
                f"{config.recipient_name_max} characters",
                field,
            )
        ]
    return []


def validate_email_address(value: str, config: ContactsConfig) -> list[ValidationError]:
    """Check an address against the configured pattern (case-insensitive)."""
    if not value:
        return [ValidationError("REQUIRED", "This field is required", "email")]
    if not re.match(config.email_pattern, value, re.IGNORECASE):
        return [ValidationError("INVALID_FORMAT", "Invalid email format", "email")]
    return []


def validate_field_value(
    field: str,
    value: str,
    config: ContactsConfig,
) -> list[ValidationError]:
    """Validate the new value of an inline edit."""
    if field not in EDITABLE_FIELDS:
        return [ValidationError("INVALID_FIELD", f"Field '{field}' cannot be edited", field)]
    if field == "email":
        return validate_email_address(value, config)
    return validate_recipient_name(value, field, config)


def validate_contact(
    recipient_en: str,
    recipient_fa: str,
    email: str,
    config: ContactsConfig,
) -> list[ValidationError]:
    errors: list[ValidationError] = []
    errors.extend(validate_recipient_name(recipient_en, "recipient_en", config))
    errors.extend(validate_recipient_name(recipient_fa, "recipient_fa", config))
    errors.extend(validate_email_address(email, config))
    return errors


# --- Operations (Functional Core) ---


def add_contact(repo: ContactRepoPort, contact: Contact) -> Contact:
    """
    Insert a contact, making it the only default when flagged.

    Raises:
        DuplicateKeyError: recipient_en already exists
    """
    if repo.get(contact.recipient_en) is not None:
        raise DuplicateKeyError("recipient_en", contact.recipient_en)

    if contact.is_default:
        repo.clear_defaults()

    try:
        return repo.insert(contact)
    except IntegrityViolation as e:
        # Lost a race against a concurrent insert of the same key
        raise DuplicateKeyError("recipient_en", contact.recipient_en) from e


def update_field(repo: ContactRepoPort, key: str, field: str, value: str) -> Contact:
    """
    Update exactly one field of an existing contact.

    Raises:
        NotFoundError: key is absent
        DuplicateKeyError: the new recipient_en or recipient_fa is taken
    """
    if repo.get(key) is None:
        raise NotFoundError(key)

    if field == "recipient_en" and value != key:
        if repo.get(value) is not None:
            raise DuplicateKeyError("recipient_en", value)

    if field == "recipient_fa":
        for other in repo.find_by_recipient_fa(value):
            if other.recipient_en != key:
                raise DuplicateKeyError("recipient_fa", value)

    try:
        repo.update_field(key, field, value)
    except IntegrityViolation as e:
        raise DuplicateKeyError(field, value) from e

    new_key = value if field == "recipient_en" else key
    updated = repo.get(new_key)
    if updated is None:
        raise NotFoundError(new_key)
    return updated


def set_default(repo: ContactRepoPort, key: str, checked: bool) -> Contact | None:
    """
    Toggle the default flag of a contact.

    Checking clears every other default first; unchecking touches only this
    row and may leave no default at all. Unknown keys are ignored.
    """
    if repo.get(key) is None:
        return None

    if checked:
        repo.clear_defaults()
    repo.set_default(key, checked)
    return repo.get(key)


def delete_contact(repo: ContactRepoPort, key: str) -> bool:
    """Delete a contact. Returns False (no-op) when the key is absent."""
    if repo.get(key) is None:
        return False
    repo.delete(key)
    return True


def build_erase_question(key: str, contact: Contact | None, language: str) -> str:
    """Prompt text; Persian clients see the Persian recipient name when known."""
    name = key
    if language == "fa" and contact is not None:
        name = contact.recipient_fa
    return f"Are you sure you want to erase '{name}'?"


def begin_erase(repo: ContactRepoPort, key: str, language: str = "en") -> EraseConfirmation:
    """Transition idle → confirm_pending for the given row."""
    contact = repo.get(key) if language == "fa" else None
    return EraseConfirmation(
        target_key=key,
        question=build_erase_question(key, contact, language),
    )


def resolve_erase(
    repo: ContactRepoPort,
    confirmation: EraseConfirmation,
    button: EraseButton,
) -> bool:
    """
    Transition confirm_pending → idle.

    OK deletes the target row (silently skipped if it vanished meanwhile);
    CANCEL changes nothing. Returns whether a row was deleted.
    """
    if confirmation.action != "erase" or confirmation.state != EraseState.CONFIRM_PENDING:
        return False
    if button != EraseButton.OK:
        return False
    return delete_contact(repo, confirmation.target_key)


# --- Run Handlers (Shell Layer) ---


def _datastore_failure(operation: str, error: DatastoreError) -> ValidationError:
    logger.exception("Contacts %s failed: %s", operation, error)
    return ValidationError("DATASTORE_ERROR", GENERIC_ERROR_MESSAGE, None)


def run_add(
    inp: AddContactInput,
    repo: ContactRepoPort,
    config: ContactsConfig | None = None,
) -> ContactOperationOutput:
    """Handle add-contact form submission."""
    cfg = config or ContactsConfig()

    recipient_en = inp.recipient_en.strip()
    recipient_fa = inp.recipient_fa.strip()
    email = inp.email.strip()

    errors = validate_contact(recipient_en, recipient_fa, email, cfg)
    if errors:
        return ContactOperationOutput(success=False, errors=errors)

    try:
        contact = add_contact(
            repo,
            Contact(
                recipient_en=recipient_en,
                recipient_fa=recipient_fa,
                email=email,
                is_default=inp.is_default,
            ),
        )
    except DuplicateKeyError as e:
        return ContactOperationOutput(
            success=False,
            errors=[ValidationError("DUPLICATE_KEY", str(e), e.field)],
        )
    except DatastoreError as e:
        return ContactOperationOutput(success=False, errors=[_datastore_failure("add", e)])

    logger.info("Contact added: %s (default=%s)", contact.recipient_en, contact.is_default)
    return ContactOperationOutput(success=True, contact=contact)


def run_update_field(
    inp: UpdateFieldInput,
    repo: ContactRepoPort,
    config: ContactsConfig | None = None,
) -> ContactOperationOutput:
    """Handle an inline cell edit."""
    cfg = config or ContactsConfig()
    value = inp.value.strip()

    errors = validate_field_value(inp.field, value, cfg)
    if errors:
        return ContactOperationOutput(success=False, errors=errors)

    try:
        contact = update_field(repo, inp.key, inp.field, value)
    except NotFoundError as e:
        return ContactOperationOutput(
            success=False,
            errors=[ValidationError("NOT_FOUND", str(e), None)],
        )
    except DuplicateKeyError as e:
        return ContactOperationOutput(
            success=False,
            errors=[ValidationError("DUPLICATE_KEY", str(e), e.field)],
        )
    except DatastoreError as e:
        return ContactOperationOutput(success=False, errors=[_datastore_failure("update", e)])

    return ContactOperationOutput(success=True, contact=contact)


def run_set_default(inp: SetDefaultInput, repo: ContactRepoPort) -> ContactOperationOutput:
    """Handle the default-recipient checkbox."""
    try:
        contact = set_default(repo, inp.key, inp.checked)
    except DatastoreError as e:
        return ContactOperationOutput(
            success=False, errors=[_datastore_failure("set_default", e)]
        )
    return ContactOperationOutput(success=True, contact=contact)


def run_delete(inp: DeleteContactInput, repo: ContactRepoPort) -> ContactOperationOutput:
    try:
        delete_contact(repo, inp.key)
    except DatastoreError as e:
        return ContactOperationOutput(success=False, errors=[_datastore_failure("delete", e)])
    return ContactOperationOutput(success=True)


def run_list(repo: ContactRepoPort) -> ContactListOutput:
    """List all contacts ordered by recipient_en."""
    try:
        contacts = repo.list_all()
    except DatastoreError as e:
        return ContactListOutput(contacts=[], total=0, errors=[_datastore_failure("list", e)])
    return ContactListOutput(contacts=contacts, total=len(contacts))


def run_begin_erase(inp: BeginEraseInput, repo: ContactRepoPort) -> EraseOutput:
    """Handle the erase button: open the confirmation prompt."""
    try:
        confirmation = begin_erase(repo, inp.key, inp.language)
    except DatastoreError as e:
        return EraseOutput(success=False, errors=[_datastore_failure("begin_erase", e)])
    return EraseOutput(
        success=True,
        state=confirmation.state,
        confirmation=confirmation,
    )


def run_resolve_erase(inp: ResolveEraseInput, repo: ContactRepoPort) -> EraseOutput:
    """Handle the answer to the erase prompt."""
    try:
        deleted = resolve_erase(repo, inp.confirmation, inp.button)
    except DatastoreError as e:
        return EraseOutput(success=False, errors=[_datastore_failure("erase", e)])

    if deleted:
        logger.info("Contact erased: %s", inp.confirmation.target_key)
    return EraseOutput(success=True, state=EraseState.IDLE, deleted=deleted)


def run(
    inp: (
        AddContactInput
        | UpdateFieldInput
        | SetDefaultInput
        | DeleteContactInput
        | BeginEraseInput
        | ResolveEraseInput
    ),
    *,
    repo: ContactRepoPort,
    config: ContactsConfig | None = None,
) -> ContactOperationOutput | EraseOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        repo: Repository port (Required)
        config: Validation bounds (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, AddContactInput):
        return run_add(inp, repo, config)
    elif isinstance(inp, UpdateFieldInput):
        return run_update_field(inp, repo, config)
    elif isinstance(inp, SetDefaultInput):
        return run_set_default(inp, repo)
    elif isinstance(inp, DeleteContactInput):
        return run_delete(inp, repo)
    elif isinstance(inp, BeginEraseInput):
        return run_begin_erase(inp, repo)
    elif isinstance(inp, ResolveEraseInput):
        return run_resolve_erase(inp, repo)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
