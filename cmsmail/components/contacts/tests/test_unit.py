"""
Contacts component unit tests.

Covers validation, add/update/default/delete semantics and the erase
confirmation state machine against an in-memory repository.
"""

from __future__ import annotations

import pytest

from cmsmail.components.contacts import (
    AddContactInput,
    BeginEraseInput,
    Contact,
    ContactsConfig,
    DeleteContactInput,
    DuplicateKeyError,
    EraseButton,
    EraseConfirmation,
    EraseState,
    NotFoundError,
    ResolveEraseInput,
    SetDefaultInput,
    UpdateFieldInput,
    add_contact,
    build_erase_question,
    run,
    run_add,
    run_begin_erase,
    run_list,
    run_resolve_erase,
    run_set_default,
    run_update_field,
    set_default,
    update_field,
    validate_contact,
    validate_field_value,
)
from cmsmail.core.errors import DatastoreError, IntegrityViolation

# --- Mock Repository ---


class MockContactRepo:
    """In-memory contact repository for testing."""

    def __init__(self) -> None:
        self._rows: dict[str, Contact] = {}

    def get(self, recipient_en: str) -> Contact | None:
        row = self._rows.get(recipient_en)
        return Contact(**vars(row)) if row else None

    def find_by_recipient_fa(self, recipient_fa: str) -> list[Contact]:
        return [Contact(**vars(c)) for c in self._rows.values() if c.recipient_fa == recipient_fa]

    def insert(self, contact: Contact) -> Contact:
        if contact.recipient_en in self._rows:
            raise IntegrityViolation("contacts.insert")
        self._rows[contact.recipient_en] = Contact(**vars(contact))
        return contact

    def update_field(self, recipient_en: str, field: str, value: str) -> None:
        row = self._rows.pop(recipient_en)
        setattr(row, field, value)
        self._rows[row.recipient_en] = row

    def set_default(self, recipient_en: str, is_default: bool) -> None:
        self._rows[recipient_en].is_default = is_default

    def clear_defaults(self) -> None:
        for row in self._rows.values():
            row.is_default = False

    def delete(self, recipient_en: str) -> None:
        self._rows.pop(recipient_en, None)

    def list_all(self) -> list[Contact]:
        return [Contact(**vars(self._rows[k])) for k in sorted(self._rows)]

    def defaults(self) -> list[str]:
        return [k for k, v in self._rows.items() if v.is_default]


class FailingContactRepo(MockContactRepo):
    """Repository whose every call fails like a broken datastore."""

    def get(self, recipient_en: str) -> Contact | None:
        raise DatastoreError("contacts.get")

    def list_all(self) -> list[Contact]:
        raise DatastoreError("contacts.list_all")


@pytest.fixture
def repo() -> MockContactRepo:
    return MockContactRepo()


@pytest.fixture
def config() -> ContactsConfig:
    return ContactsConfig()


def _add(repo: MockContactRepo, key: str, fa: str, default: bool = False) -> None:
    repo.insert(Contact(recipient_en=key, recipient_fa=fa, email=f"{key}@x.com", is_default=default))


# --- Validation ---


class TestValidation:
    def test_valid_contact(self, config: ContactsConfig) -> None:
        assert validate_contact("Sales", "فروش", "sales@example.com", config) == []

    def test_empty_fields_are_required(self, config: ContactsConfig) -> None:
        errors = validate_contact("", "", "", config)
        assert {e.field for e in errors} == {"recipient_en", "recipient_fa", "email"}
        assert all(e.code == "REQUIRED" for e in errors)

    def test_name_too_long(self) -> None:
        cfg = ContactsConfig(recipient_name_max=5)
        errors = validate_contact("Marketing", "م", "m@example.com", cfg)
        assert [e.code for e in errors] == ["INVALID_LENGTH"]

    def test_email_case_insensitive(self, config: ContactsConfig) -> None:
        assert validate_contact("A", "B", "SALES@EXAMPLE.COM", config) == []

    def test_malformed_email(self, config: ContactsConfig) -> None:
        errors = validate_contact("A", "B", "not-an-email", config)
        assert errors[0].code == "INVALID_FORMAT"

    def test_unknown_field(self, config: ContactsConfig) -> None:
        errors = validate_field_value("is_default", "1", config)
        assert errors[0].code == "INVALID_FIELD"


# --- Add ---


class TestAddContact:
    def test_add_inserts_row(self, repo: MockContactRepo) -> None:
        add_contact(repo, Contact("Sales", "فروش", "sales@x.com"))
        assert repo.get("Sales") is not None

    def test_duplicate_key_rejected(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        with pytest.raises(DuplicateKeyError):
            add_contact(repo, Contact("Sales", "دیگر", "other@x.com"))
        assert len(repo.list_all()) == 1

    def test_key_is_case_sensitive(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        add_contact(repo, Contact("sales", "فروش۲", "s2@x.com"))
        assert len(repo.list_all()) == 2

    def test_new_default_replaces_old(self, repo: MockContactRepo) -> None:
        add_contact(repo, Contact("a@x.com", "a", "a@x.com", is_default=True))
        add_contact(repo, Contact("b@x.com", "b", "b@x.com", is_default=True))
        assert repo.defaults() == ["b@x.com"]

    def test_run_add_strips_and_validates(self, repo: MockContactRepo) -> None:
        result = run_add(AddContactInput("  Sales ", " فروش ", " sales@x.com "), repo)
        assert result.success
        assert result.contact is not None
        assert result.contact.recipient_en == "Sales"

    def test_run_add_validation_error_never_writes(self, repo: MockContactRepo) -> None:
        result = run_add(AddContactInput("Sales", "فروش", "bad", is_default=True), repo)
        assert not result.success
        assert repo.list_all() == []

    def test_run_add_duplicate_code(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        result = run_add(AddContactInput("Sales", "x", "x@x.com"), repo)
        assert result.errors[0].code == "DUPLICATE_KEY"
        assert result.errors[0].field == "recipient_en"

    def test_run_add_datastore_failure(self) -> None:
        result = run_add(AddContactInput("Sales", "فروش", "s@x.com"), FailingContactRepo())
        assert not result.success
        assert result.errors[0].code == "DATASTORE_ERROR"
        assert "Datastore" not in result.errors[0].message


# --- Update ---


class TestUpdateField:
    def test_not_found(self, repo: MockContactRepo) -> None:
        with pytest.raises(NotFoundError):
            update_field(repo, "missing", "email", "a@x.com")

    def test_update_email_only(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        updated = update_field(repo, "Sales", "email", "new@x.com")
        assert updated.email == "new@x.com"
        assert updated.recipient_fa == "فروش"

    def test_rename_key(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        updated = update_field(repo, "Sales", "recipient_en", "Sales Team")
        assert updated.recipient_en == "Sales Team"
        assert repo.get("Sales") is None

    def test_rename_to_same_key_is_allowed(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        assert update_field(repo, "Sales", "recipient_en", "Sales").recipient_en == "Sales"

    def test_rename_to_taken_key(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        _add(repo, "Support", "پشتیبانی")
        with pytest.raises(DuplicateKeyError):
            update_field(repo, "Sales", "recipient_en", "Support")

    def test_recipient_fa_taken_by_other_row(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        _add(repo, "Support", "پشتیبانی")
        with pytest.raises(DuplicateKeyError):
            update_field(repo, "Sales", "recipient_fa", "پشتیبانی")

    def test_recipient_fa_unchanged_on_same_row(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        assert update_field(repo, "Sales", "recipient_fa", "فروش").recipient_fa == "فروش"

    def test_run_update_codes(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        _add(repo, "Support", "پشتیبانی")

        missing = run_update_field(UpdateFieldInput("x", "email", "a@x.com"), repo)
        assert missing.errors[0].code == "NOT_FOUND"

        dup = run_update_field(UpdateFieldInput("Sales", "recipient_fa", "پشتیبانی"), repo)
        assert dup.errors[0].code == "DUPLICATE_KEY"

        bad = run_update_field(UpdateFieldInput("Sales", "email", "nope"), repo)
        assert bad.errors[0].code == "INVALID_FORMAT"


# --- Default ---


class TestSetDefault:
    def test_unknown_key_is_noop(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش", default=True)
        assert set_default(repo, "missing", True) is None
        assert repo.defaults() == ["Sales"]

    def test_check_moves_default(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش", default=True)
        _add(repo, "Support", "پشتیبانی")
        set_default(repo, "Support", True)
        assert repo.defaults() == ["Support"]

    def test_uncheck_leaves_no_default(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش", default=True)
        result = run_set_default(SetDefaultInput("Sales", False), repo)
        assert result.success
        assert repo.defaults() == []

    def test_uncheck_other_row_keeps_default(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش", default=True)
        _add(repo, "Support", "پشتیبانی")
        set_default(repo, "Support", False)
        assert repo.defaults() == ["Sales"]


# --- Erase ---


class TestErase:
    def test_question_uses_key_by_default(self) -> None:
        contact = Contact("Sales", "فروش", "s@x.com")
        assert "Sales" in build_erase_question("Sales", contact, "en")

    def test_question_uses_persian_name(self) -> None:
        contact = Contact("Sales", "فروش", "s@x.com")
        assert "فروش" in build_erase_question("Sales", contact, "fa")

    def test_begin_erase_pending(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        result = run_begin_erase(BeginEraseInput("Sales", "fa"), repo)
        assert result.state == EraseState.CONFIRM_PENDING
        assert result.confirmation is not None
        assert result.confirmation.target_key == "Sales"
        assert "فروش" in result.confirmation.question
        assert repo.get("Sales") is not None

    def test_cancel_keeps_row(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        confirmation = EraseConfirmation(target_key="Sales", question="?")
        result = run_resolve_erase(ResolveEraseInput(confirmation, EraseButton.CANCEL), repo)
        assert result.state == EraseState.IDLE
        assert not result.deleted
        assert repo.get("Sales") is not None

    def test_ok_deletes_row(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        confirmation = EraseConfirmation(target_key="Sales", question="?")
        result = run_resolve_erase(ResolveEraseInput(confirmation, EraseButton.OK), repo)
        assert result.deleted
        assert repo.get("Sales") is None

    def test_ok_on_vanished_row(self, repo: MockContactRepo) -> None:
        confirmation = EraseConfirmation(target_key="Gone", question="?")
        result = run_resolve_erase(ResolveEraseInput(confirmation, EraseButton.OK), repo)
        assert result.success
        assert not result.deleted

    def test_other_action_is_ignored(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        confirmation = EraseConfirmation(target_key="Sales", question="?", action="rename")
        result = run_resolve_erase(ResolveEraseInput(confirmation, EraseButton.OK), repo)
        assert not result.deleted
        assert repo.get("Sales") is not None


# --- List & dispatcher ---


class TestListAndDispatch:
    def test_list_ordered_by_key(self, repo: MockContactRepo) -> None:
        _add(repo, "Zeta", "ز")
        _add(repo, "Alpha", "آ")
        result = run_list(repo)
        assert [c.recipient_en for c in result.contacts] == ["Alpha", "Zeta"]
        assert result.total == 2

    def test_list_datastore_failure(self) -> None:
        result = run_list(FailingContactRepo())
        assert result.errors[0].code == "DATASTORE_ERROR"
        assert result.contacts == []

    def test_run_dispatches_delete(self, repo: MockContactRepo) -> None:
        _add(repo, "Sales", "فروش")
        result = run(DeleteContactInput("Sales"), repo=repo)
        assert result.success
        assert repo.get("Sales") is None

    def test_run_delete_unknown_is_noop(self, repo: MockContactRepo) -> None:
        assert run(DeleteContactInput("missing"), repo=repo).success

    def test_run_unknown_input(self, repo: MockContactRepo) -> None:
        with pytest.raises(ValueError):
            run("nope", repo=repo)  # type: ignore[arg-type]
