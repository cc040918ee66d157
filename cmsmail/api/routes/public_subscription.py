"""
Public mailing-list endpoints.

Endpoints:
- POST /api/public/subscription/subscribe - Request a subscription
- GET /api/public/subscription/unsubscribe - Inbox behind an unsubscribe link
- POST /api/public/subscription/unsubscribe - Request an unsubscription
- GET /api/public/subscription/confirm - Apply the pending request
- GET /api/public/subscription/cancel - Discard the pending request

Subscribe and unsubscribe submissions are rate limited per client IP and
must carry a solved captcha before anything touches the datastore.
"""

from __future__ import annotations

import logging
from typing import Literal, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from cmsmail.adapters.captcha_store import InMemoryChallengeStore
from cmsmail.adapters.sqlite_db import SQLiteUnitOfWork
from cmsmail.adapters.subscription_mail import SubscriptionEmailSender
from cmsmail.api.deps import (
    get_challenge_store,
    get_rate_limiter,
    get_subscription_config,
    get_subscription_email_sender,
    get_uow,
)
from cmsmail.app_shell.rate_limit import RateLimiter
from cmsmail.components.captcha import VerifyChallengeInput, run_verify
from cmsmail.components.subscription import (
    CancelInput,
    ConfirmInput,
    Language,
    ResolveInboxInput,
    SubscribeInput,
    SubscriberState,
    SubscriptionConfig,
    UnsubscribeInput,
    ValidationError,
    run_cancel,
    run_confirm,
    run_resolve_inbox,
    run_subscribe,
    run_unsubscribe,
)
from cmsmail.core.errors import GENERIC_ERROR_MESSAGE, DatastoreError

logger = logging.getLogger(__name__)

router = APIRouter()

LanguageCode = Literal["en", "fa"]


# --- Request/Response Models ---


class SubscribeRequest(BaseModel):
    """Request body for the subscribe form."""

    inbox: str = Field(..., description="Email address to subscribe")
    languages: list[LanguageCode] = Field(..., description="Mailings to receive")
    captcha_id: str
    captcha_answer: str


class UnsubscribeRequest(BaseModel):
    """Request body for the unsubscribe form; languages are the ones to drop."""

    inbox: str
    uuid: str
    languages: list[LanguageCode] = Field(..., description="Mailings to stop")
    captcha_id: str
    captcha_answer: str


class RequestAcceptedResponse(BaseModel):
    success: bool
    message: str


class ResolveInboxResponse(BaseModel):
    inbox: str
    subscription: str


class LinkResultResponse(BaseModel):
    """Response for the confirm and cancel links."""

    success: bool
    message: str
    subscription: str


class ErrorResponse(BaseModel):
    detail: str
    code: str


# --- Helper Functions ---


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check X-Forwarded-For header (proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _to_languages(codes: list[str]) -> frozenset[Language]:
    return frozenset(Language(code) for code in codes)


def _guard_form(
    request: Request,
    captcha_id: str,
    captcha_answer: str,
    rate_limiter: RateLimiter,
    store: InMemoryChallengeStore,
) -> None:
    """Rate limit, then captcha; both run before any datastore access."""
    client_ip = get_client_ip(request)
    if not rate_limiter.check_subscription(client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(rate_limiter.subscription_retry_after(client_ip))},
        )

    verdict = run_verify(VerifyChallengeInput(challenge_id=captcha_id, answer=captcha_answer), store)
    if not verdict.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect or expired captcha answer",
        )


def _commit(uow: SQLiteUnitOfWork) -> None:
    try:
        uow.commit()
    except DatastoreError:
        logger.exception("Subscription commit failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=GENERIC_ERROR_MESSAGE,
        ) from None


def _raise_for_errors(errors: list[ValidationError]) -> NoReturn:
    for error in errors:
        if error.code == "DATASTORE_ERROR":
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=error.message,
            )
        if error.code in ("INVALID_TOKEN", "INVALID_FORMAT", "REQUIRED"):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Unable to process request",
    )


# --- Subscribe ---


@router.post(
    "/subscription/subscribe",
    response_model=RequestAcceptedResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Request a subscription",
)
def subscribe(
    body: SubscribeRequest,
    request: Request,
    uow: SQLiteUnitOfWork = Depends(get_uow),
    email_sender: SubscriptionEmailSender = Depends(get_subscription_email_sender),
    config: SubscriptionConfig = Depends(get_subscription_config),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    store: InMemoryChallengeStore = Depends(get_challenge_store),
) -> RequestAcceptedResponse:
    """
    Record a subscribe request and mail the confirm/cancel links.

    The same message is returned for new and known inboxes so the response
    does not reveal whether an address is registered.
    """
    _guard_form(request, body.captcha_id, body.captcha_answer, rate_limiter, store)

    if not body.languages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Select at least one language",
        )

    result = run_subscribe(
        SubscribeInput(inbox=body.inbox, languages=_to_languages(body.languages)),
        uow.subscribers,
        email_sender=email_sender,
        config=config,
        commit=uow.commit,
    )
    if not result.success:
        _raise_for_errors(result.errors)

    return RequestAcceptedResponse(
        success=True,
        message="Please check your email to confirm your subscription",
    )


# --- Unsubscribe ---


@router.get(
    "/subscription/unsubscribe",
    response_model=ResolveInboxResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid link"}},
    summary="Resolve the inbox behind an unsubscribe link",
)
def resolve_unsubscribe_link(
    uuid: str = "",
    uow: SQLiteUnitOfWork = Depends(get_uow),
) -> ResolveInboxResponse:
    result = run_resolve_inbox(ResolveInboxInput(uuid=uuid), uow.subscribers)
    if not result.success:
        _raise_for_errors(result.errors)

    assert result.inbox is not None and result.subscription is not None
    return ResolveInboxResponse(inbox=result.inbox, subscription=result.subscription.value)


@router.post(
    "/subscription/unsubscribe",
    response_model=RequestAcceptedResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid link or request"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Request an unsubscription",
)
def unsubscribe(
    body: UnsubscribeRequest,
    request: Request,
    uow: SQLiteUnitOfWork = Depends(get_uow),
    email_sender: SubscriptionEmailSender = Depends(get_subscription_email_sender),
    config: SubscriptionConfig = Depends(get_subscription_config),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    store: InMemoryChallengeStore = Depends(get_challenge_store),
) -> RequestAcceptedResponse:
    """Record an unsubscribe request; it takes effect on the confirm link."""
    _guard_form(request, body.captcha_id, body.captcha_answer, rate_limiter, store)

    if not body.languages:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Select at least one language",
        )

    result = run_unsubscribe(
        UnsubscribeInput(
            inbox=body.inbox,
            uuid=body.uuid,
            languages=_to_languages(body.languages),
        ),
        uow.subscribers,
        email_sender=email_sender,
        config=config,
        commit=uow.commit,
    )
    if not result.success:
        _raise_for_errors(result.errors)

    return RequestAcceptedResponse(
        success=True,
        message="Please check your email to confirm your unsubscription",
    )


# --- Confirmation links ---


@router.get(
    "/subscription/confirm",
    response_model=LinkResultResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid link"}},
    summary="Confirm the pending request",
)
def confirm_request(
    uuid: str = "",
    uow: SQLiteUnitOfWork = Depends(get_uow),
) -> LinkResultResponse:
    """Apply the pending request. Idempotent."""
    result = run_confirm(ConfirmInput(uuid=uuid), uow.subscribers)
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    assert result.subscription is not None
    if result.already_confirmed:
        message = "Your request was already confirmed"
    elif result.state == SubscriberState.UNSUBSCRIBED:
        message = "You have been unsubscribed"
    else:
        message = "Your subscription is now confirmed"

    return LinkResultResponse(
        success=True,
        message=message,
        subscription=result.subscription.value,
    )


@router.get(
    "/subscription/cancel",
    response_model=LinkResultResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid link"}},
    summary="Cancel the pending request",
)
def cancel_request(
    uuid: str = "",
    uow: SQLiteUnitOfWork = Depends(get_uow),
) -> LinkResultResponse:
    """Discard the pending request. Idempotent."""
    result = run_cancel(CancelInput(uuid=uuid), uow.subscribers)
    if not result.success:
        _raise_for_errors(result.errors)
    _commit(uow)

    assert result.subscription is not None
    message = (
        "There was no pending request to cancel"
        if result.already_cancelled
        else "Your request has been cancelled"
    )
    return LinkResultResponse(
        success=True,
        message=message,
        subscription=result.subscription.value,
    )
