"""
Admin routes for the contact-list editor.

Endpoints:
- GET /api/admin/contacts - List contacts
- POST /api/admin/contacts - Add a contact
- PATCH /api/admin/contacts/{key} - Inline edit of one field
- PUT /api/admin/contacts/{key}/default - Default recipient checkbox
- POST /api/admin/contacts/{key}/erase - Open erase prompt (returns ticket)
- POST /api/admin/contacts/erase/resolve - Answer erase prompt
"""

from __future__ import annotations

import logging
from typing import Any, Literal, NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from cmsmail.adapters.sqlite_db import SQLiteContactRepo, SQLiteUnitOfWork
from cmsmail.api.auth_utils import create_erase_ticket, read_erase_ticket
from cmsmail.api.deps import (
    get_contact_repo,
    get_contacts_config,
    get_current_admin,
    get_rules,
    get_uow,
)
from cmsmail.components.contacts import (
    AddContactInput,
    BeginEraseInput,
    Contact,
    ContactsConfig,
    EraseButton,
    ResolveEraseInput,
    SetDefaultInput,
    UpdateFieldInput,
    ValidationError,
    run_add,
    run_begin_erase,
    run_list,
    run_resolve_erase,
    run_set_default,
    run_update_field,
)
from cmsmail.core.errors import GENERIC_ERROR_MESSAGE, DatastoreError
from cmsmail.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_CODE = {
    "DUPLICATE_KEY": status.HTTP_409_CONFLICT,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DATASTORE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# --- Request/Response Models ---


class ContactCreateRequest(BaseModel):
    recipient_en: str
    recipient_fa: str
    email: str
    is_default: bool = False


class FieldUpdateRequest(BaseModel):
    field: str = Field(..., description="recipient_en, recipient_fa or email")
    value: str


class DefaultRequest(BaseModel):
    checked: bool


class EraseRequest(BaseModel):
    language: Literal["en", "fa"] = "en"


class EraseResolveRequest(BaseModel):
    ticket: str
    button: Literal["ok", "cancel"]


class ContactResponse(BaseModel):
    recipient_en: str
    recipient_fa: str
    email: str
    is_default: bool


class ContactListResponse(BaseModel):
    items: list[ContactResponse]
    total: int


class DefaultResponse(BaseModel):
    success: bool
    contact: ContactResponse | None = None


class EraseTicketResponse(BaseModel):
    state: str
    question: str
    ticket: str
    expires_in: int


class EraseResolveResponse(BaseModel):
    state: str
    deleted: bool


# --- Helper Functions ---


def _to_response(contact: Contact) -> ContactResponse:
    return ContactResponse(
        recipient_en=contact.recipient_en,
        recipient_fa=contact.recipient_fa,
        email=contact.email,
        is_default=contact.is_default,
    )


def _raise_for_errors(errors: list[ValidationError]) -> NoReturn:
    """Map component error codes to an HTTP error."""
    status_code = status.HTTP_400_BAD_REQUEST
    for err in errors:
        if err.code in _STATUS_BY_CODE:
            status_code = _STATUS_BY_CODE[err.code]
            break

    detail: list[dict[str, Any]] = [
        {"code": err.code, "message": err.message, "field": err.field} for err in errors
    ]
    raise HTTPException(status_code=status_code, detail=detail)


def _commit(uow: SQLiteUnitOfWork) -> None:
    try:
        uow.commit()
    except DatastoreError:
        logger.exception("Contact-list commit failed")
        _raise_for_errors([ValidationError("DATASTORE_ERROR", GENERIC_ERROR_MESSAGE, None)])


# --- Routes ---


@router.get("/contacts", response_model=ContactListResponse)
def list_contacts(
    admin: dict[str, Any] = Depends(get_current_admin),
    repo: SQLiteContactRepo = Depends(get_contact_repo),
) -> ContactListResponse:
    """List all contacts ordered by recipient_en."""
    result = run_list(repo)
    if result.errors:
        _raise_for_errors(result.errors)

    return ContactListResponse(
        items=[_to_response(c) for c in result.contacts],
        total=result.total,
    )


@router.post("/contacts", response_model=ContactResponse, status_code=201)
def add_contact(
    data: ContactCreateRequest,
    admin: dict[str, Any] = Depends(get_current_admin),
    uow: SQLiteUnitOfWork = Depends(get_uow),
    config: ContactsConfig = Depends(get_contacts_config),
) -> ContactResponse:
    """Add a contact; a new default recipient replaces the previous one."""
    input_data = AddContactInput(
        recipient_en=data.recipient_en,
        recipient_fa=data.recipient_fa,
        email=data.email,
        is_default=data.is_default,
    )

    result = run_add(input_data, uow.contacts, config)
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    assert result.contact is not None  # Success guarantees contact is not None
    return _to_response(result.contact)


@router.patch("/contacts/{key}", response_model=ContactResponse)
def update_contact_field(
    key: str,
    data: FieldUpdateRequest,
    admin: dict[str, Any] = Depends(get_current_admin),
    uow: SQLiteUnitOfWork = Depends(get_uow),
    config: ContactsConfig = Depends(get_contacts_config),
) -> ContactResponse:
    """Inline edit of one cell."""
    input_data = UpdateFieldInput(key=key, field=data.field, value=data.value)

    result = run_update_field(input_data, uow.contacts, config)
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    assert result.contact is not None
    return _to_response(result.contact)


@router.put("/contacts/{key}/default", response_model=DefaultResponse)
def set_default_contact(
    key: str,
    data: DefaultRequest,
    admin: dict[str, Any] = Depends(get_current_admin),
    uow: SQLiteUnitOfWork = Depends(get_uow),
) -> DefaultResponse:
    """Default recipient checkbox; an unknown key is a no-op."""
    result = run_set_default(SetDefaultInput(key=key, checked=data.checked), uow.contacts)
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    return DefaultResponse(
        success=True,
        contact=_to_response(result.contact) if result.contact else None,
    )


@router.post("/contacts/erase/resolve", response_model=EraseResolveResponse)
def resolve_erase(
    data: EraseResolveRequest,
    admin: dict[str, Any] = Depends(get_current_admin),
    uow: SQLiteUnitOfWork = Depends(get_uow),
) -> EraseResolveResponse:
    """Answer the erase prompt with ok or cancel."""
    confirmation = read_erase_ticket(data.ticket)
    if confirmation is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[
                {
                    "code": "INVALID_TICKET",
                    "message": "Erase confirmation expired or invalid",
                    "field": "ticket",
                }
            ],
        )

    result = run_resolve_erase(
        ResolveEraseInput(confirmation=confirmation, button=EraseButton(data.button)),
        uow.contacts,
    )
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    return EraseResolveResponse(state=result.state.value, deleted=result.deleted)


@router.post("/contacts/{key}/erase", response_model=EraseTicketResponse)
def begin_erase(
    key: str,
    data: EraseRequest | None = None,
    admin: dict[str, Any] = Depends(get_current_admin),
    repo: SQLiteContactRepo = Depends(get_contact_repo),
    rules: Rules = Depends(get_rules),
) -> EraseTicketResponse:
    """Open the erase prompt; the returned ticket is handed back with the answer."""
    language = data.language if data else "en"
    result = run_begin_erase(BeginEraseInput(key=key, language=language), repo)
    if not result.success:
        _raise_for_errors(result.errors)

    assert result.confirmation is not None
    ttl = rules.security.erase_ticket_ttl_seconds
    return EraseTicketResponse(
        state=result.state.value,
        question=result.confirmation.question,
        ticket=create_erase_ticket(result.confirmation, ttl),
        expires_in=ttl,
    )
