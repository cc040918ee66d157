"""
Contacts component.

Admin contact-list editor: unique recipient keys, a single default
recipient, and a confirmed erase dialog.
"""

from cmsmail.components.contacts.component import (
    add_contact,
    begin_erase,
    build_erase_question,
    delete_contact,
    resolve_erase,
    run,
    run_add,
    run_begin_erase,
    run_delete,
    run_list,
    run_resolve_erase,
    run_set_default,
    run_update_field,
    set_default,
    update_field,
    validate_contact,
    validate_field_value,
)
from cmsmail.components.contacts.models import (
    EDITABLE_FIELDS,
    AddContactInput,
    BeginEraseInput,
    Contact,
    ContactListOutput,
    ContactOperationOutput,
    ContactsConfig,
    ContactsError,
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

__all__ = [
    # Component
    "run",
    "run_add",
    "run_update_field",
    "run_set_default",
    "run_delete",
    "run_list",
    "run_begin_erase",
    "run_resolve_erase",
    # Pure functions
    "add_contact",
    "update_field",
    "set_default",
    "delete_contact",
    "begin_erase",
    "resolve_erase",
    "build_erase_question",
    "validate_contact",
    "validate_field_value",
    # Models
    "Contact",
    "EDITABLE_FIELDS",
    "EraseState",
    "EraseButton",
    "EraseConfirmation",
    "ContactsConfig",
    # Input/Output
    "AddContactInput",
    "UpdateFieldInput",
    "SetDefaultInput",
    "DeleteContactInput",
    "BeginEraseInput",
    "ResolveEraseInput",
    "ContactOperationOutput",
    "ContactListOutput",
    "EraseOutput",
    "ValidationError",
    # Errors
    "ContactsError",
    "DuplicateKeyError",
    "NotFoundError",
    # Ports
    "ContactRepoPort",
]
