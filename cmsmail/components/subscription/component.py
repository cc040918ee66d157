"""
Subscription component.

Functional core for the bilingual mailing list: subscribe and unsubscribe
requests are recorded as pending and only applied through the confirm link
sent to the inbox.

Key behaviors:
- First subscribe inserts a row with subscription = none and a fresh token
- Repeat subscribes only replace pending_subscription (idempotent)
- Unsubscribe requires the token to resolve to the same inbox
- Unsubscribe keeps the languages NOT checked on the form
- Confirm promotes pending → confirmed; cancel discards pending

Invariants:
- uuid is unique across rows and never changes once assigned
- subscription only changes through confirm
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from urllib.parse import urlencode
from uuid import uuid4

from cmsmail.components.subscription.models import (
    CancelInput,
    CancelOutput,
    ConfirmInput,
    ConfirmOutput,
    InvalidInboxError,
    InvalidTokenError,
    Language,
    ResolveInboxInput,
    ResolveInboxOutput,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriberState,
    Subscription,
    SubscriptionConfig,
    UnsubscribeInput,
    UnsubscribeOutput,
    ValidationError,
)
from cmsmail.components.subscription.ports import (
    SubscriberRepoPort,
    SubscriptionEmailSenderPort,
)
from cmsmail.core.errors import GENERIC_ERROR_MESSAGE, DatastoreError, IntegrityViolation

logger = logging.getLogger(__name__)

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Bound on token re-generation when a fresh token collides with a stored one
MAX_TOKEN_ATTEMPTS = 16


# --- Pure Functions (Functional Core) ---


def normalize_inbox(inbox: str) -> str:
    """
    Trim and lowercase an inbox, rejecting malformed addresses.

    Raises:
        InvalidInboxError: empty, too long or malformed
    """
    normalized = inbox.strip().lower() if inbox else ""
    if not normalized:
        raise InvalidInboxError(inbox, "Email address is required")
    if len(normalized) > 254:
        raise InvalidInboxError(inbox, "Email address is too long")
    if not EMAIL_REGEX.match(normalized):
        raise InvalidInboxError(inbox, "Invalid email format")
    return normalized


def requested_subscription(languages: frozenset[Language]) -> Subscription:
    """Pending subscription for a subscribe form selection."""
    return Subscription.from_languages(languages)


def unsubscribe_target(languages: frozenset[Language]) -> Subscription:
    """
    Target subscription for an unsubscribe form selection.

    Mapped in reverse compared to subscribe: the languages that remain are
    the ones NOT checked (both → none, en → fa, fa → en, none → en_fa).
    """
    remaining = frozenset(Language) - frozenset(languages)
    return Subscription.from_languages(remaining)


def state_of(subscriber: Subscriber | None) -> SubscriberState:
    """Derive the lifecycle state of a stored row."""
    if subscriber is None:
        return SubscriberState.UNREGISTERED

    pending = subscriber.pending_subscription
    if pending is None:
        if subscriber.subscription == Subscription.NONE:
            return SubscriberState.UNSUBSCRIBED
        return SubscriberState.CONFIRMED

    if pending.languages < subscriber.subscription.languages:
        return SubscriberState.PENDING_UNSUBSCRIPTION
    return SubscriberState.PENDING_CONFIRMATION


def generate_uuid() -> str:
    """Random opaque token."""
    return str(uuid4())


def allocate_uuid(
    repo: SubscriberRepoPort,
    generator: Callable[[], str] = generate_uuid,
    max_attempts: int = MAX_TOKEN_ATTEMPTS,
) -> str:
    """
    Generate a token not held by any stored subscriber.

    Re-queries the repository and retries on collision.
    """
    for _ in range(max_attempts):
        candidate = generator()
        if repo.get_by_uuid(candidate) is None:
            return candidate
    raise DatastoreError("allocate_uuid", RuntimeError("no free token after retries"))


def request_subscribe(
    repo: SubscriberRepoPort,
    inbox: str,
    languages: frozenset[Language],
    generator: Callable[[], str] = generate_uuid,
) -> tuple[Subscriber, bool]:
    """
    Record a subscribe request.

    Returns the stored subscriber and whether it was newly created.
    """
    pending = requested_subscription(languages)

    existing = repo.get_by_inbox(inbox)
    if existing is not None:
        repo.update_pending(inbox, pending)
        existing.pending_subscription = pending
        return existing, False

    subscriber = Subscriber(
        inbox=inbox,
        uuid=allocate_uuid(repo, generator),
        subscription=Subscription.NONE,
        pending_subscription=pending,
    )
    try:
        return repo.insert(subscriber), True
    except IntegrityViolation:
        # A concurrent request inserted the inbox first
        repo.update_pending(inbox, pending)
        stored = repo.get_by_inbox(inbox)
        if stored is None:
            raise
        return stored, False


def request_unsubscribe(
    repo: SubscriberRepoPort,
    inbox: str,
    uuid: str,
    languages: frozenset[Language],
) -> Subscriber:
    """
    Record an unsubscribe request.

    Raises:
        InvalidTokenError: token unknown or bound to another inbox
    """
    subscriber = repo.get_by_uuid(uuid) if uuid else None
    if subscriber is None:
        raise InvalidTokenError("unknown token")
    if subscriber.inbox != inbox:
        raise InvalidTokenError("token does not belong to this inbox")

    target = unsubscribe_target(languages)
    if not target.languages <= subscriber.subscription.languages:
        logger.warning(
            "Unsubscribe request for %s targets %s, wider than confirmed %s",
            inbox,
            target.value,
            subscriber.subscription.value,
        )

    repo.update_pending(inbox, target)
    subscriber.pending_subscription = target
    return subscriber


def confirm(repo: SubscriberRepoPort, uuid: str) -> tuple[Subscriber, bool]:
    """
    Apply the pending request: subscription := pending, pending cleared.

    Returns the subscriber and whether anything was applied.

    Raises:
        InvalidTokenError: token unknown
    """
    subscriber = repo.get_by_uuid(uuid) if uuid else None
    if subscriber is None:
        raise InvalidTokenError("unknown token")

    if subscriber.pending_subscription is None:
        return subscriber, False

    subscriber.subscription = subscriber.pending_subscription
    subscriber.pending_subscription = None
    repo.update_subscription(subscriber.inbox, subscriber.subscription, None)
    return subscriber, True


def cancel(repo: SubscriberRepoPort, uuid: str) -> tuple[Subscriber, bool]:
    """
    Discard the pending request, leaving subscription unchanged.

    Raises:
        InvalidTokenError: token unknown
    """
    subscriber = repo.get_by_uuid(uuid) if uuid else None
    if subscriber is None:
        raise InvalidTokenError("unknown token")

    if subscriber.pending_subscription is None:
        return subscriber, False

    repo.update_pending(subscriber.inbox, None)
    subscriber.pending_subscription = None
    return subscriber, True


def build_link(base_url: str, path: str, **params: str) -> str:
    """Build an absolute link carrying the given query parameters."""
    base = base_url.rstrip("/")
    return f"{base}{path}?{urlencode(params)}"


def dispatch_request_email(
    email_sender: SubscriptionEmailSenderPort,
    subscriber: Subscriber,
    config: SubscriptionConfig,
    unsubscribing: bool = False,
) -> bool:
    """
    Send the confirm/cancel links of the pending request. Never raises.

    The mail also carries the standing unsubscribe link for the inbox.
    """
    if subscriber.pending_subscription is None:
        return False

    confirm_url = build_link(config.base_url, config.confirm_path, uuid=subscriber.uuid)
    cancel_url = build_link(config.base_url, config.cancel_path, uuid=subscriber.uuid)
    unsubscribe_url = build_link(
        config.base_url, config.unsubscribe_path, uuid=subscriber.uuid, inbox=subscriber.inbox
    )
    try:
        sent = email_sender.send_request_email(
            subscriber.inbox,
            subscriber.pending_subscription,
            confirm_url,
            cancel_url,
            config.site_name,
            unsubscribing=unsubscribing,
            unsubscribe_url=unsubscribe_url,
        )
    except Exception:
        logger.exception("Confirmation mail to %s could not be sent", subscriber.inbox)
        return False

    if not sent:
        logger.warning("Confirmation mail to %s was not delivered", subscriber.inbox)
    return sent


# --- Run Handlers (Shell Layer) ---


def _datastore_failure(operation: str, error: DatastoreError) -> ValidationError:
    logger.exception("Subscription %s failed: %s", operation, error)
    return ValidationError("DATASTORE_ERROR", GENERIC_ERROR_MESSAGE, None)


def _invalid_token() -> ValidationError:
    return ValidationError("INVALID_TOKEN", "Invalid or unknown subscription link", None)


def _commit(commit: Callable[[], None] | None, operation: str) -> ValidationError | None:
    if commit is None:
        return None
    try:
        commit()
    except DatastoreError as e:
        return _datastore_failure(f"{operation} commit", e)
    return None


def run_subscribe(
    inp: SubscribeInput,
    repo: SubscriberRepoPort,
    *,
    email_sender: SubscriptionEmailSenderPort | None = None,
    config: SubscriptionConfig | None = None,
    uuid_generator: Callable[[], str] = generate_uuid,
    commit: Callable[[], None] | None = None,
) -> SubscribeOutput:
    """
    Handle subscribe form submission (Atomic Handler).

    When a commit hook is given, the request is committed before any mail
    goes out; a failed commit sends nothing.
    """
    cfg = config or SubscriptionConfig()

    try:
        inbox = normalize_inbox(inp.inbox)
    except InvalidInboxError as e:
        return SubscribeOutput(
            success=False,
            errors=[ValidationError("INVALID_FORMAT", e.reason, "inbox")],
        )

    try:
        subscriber, created = request_subscribe(repo, inbox, inp.languages, uuid_generator)
    except DatastoreError as e:
        return SubscribeOutput(success=False, errors=[_datastore_failure("subscribe", e)])

    failure = _commit(commit, "subscribe")
    if failure:
        return SubscribeOutput(success=False, errors=[failure])

    logger.info(
        "Subscribe request for %s: pending=%s created=%s",
        inbox,
        subscriber.pending_subscription.value if subscriber.pending_subscription else None,
        created,
    )

    if email_sender and cfg.send_mail:
        dispatch_request_email(email_sender, subscriber, cfg)

    return SubscribeOutput(
        success=True,
        uuid=subscriber.uuid,
        created=created,
        pending_subscription=subscriber.pending_subscription,
    )


def run_unsubscribe(
    inp: UnsubscribeInput,
    repo: SubscriberRepoPort,
    *,
    email_sender: SubscriptionEmailSenderPort | None = None,
    config: SubscriptionConfig | None = None,
    commit: Callable[[], None] | None = None,
) -> UnsubscribeOutput:
    """Handle unsubscribe form submission (Atomic Handler). Commits before mailing."""
    cfg = config or SubscriptionConfig()

    # Nothing ticked means nothing to drop
    if not inp.languages:
        return UnsubscribeOutput(
            success=False,
            errors=[ValidationError("REQUIRED", "Select at least one language", "languages")],
        )

    try:
        inbox = normalize_inbox(inp.inbox)
    except InvalidInboxError:
        return UnsubscribeOutput(success=False, errors=[_invalid_token()])

    try:
        subscriber = request_unsubscribe(repo, inbox, inp.uuid, inp.languages)
    except InvalidTokenError as e:
        logger.info("Unsubscribe rejected for %s: %s", inbox, e.reason)
        return UnsubscribeOutput(success=False, errors=[_invalid_token()])
    except DatastoreError as e:
        return UnsubscribeOutput(success=False, errors=[_datastore_failure("unsubscribe", e)])

    failure = _commit(commit, "unsubscribe")
    if failure:
        return UnsubscribeOutput(success=False, errors=[failure])

    if email_sender and cfg.send_mail:
        dispatch_request_email(email_sender, subscriber, cfg, unsubscribing=True)

    return UnsubscribeOutput(
        success=True,
        pending_subscription=subscriber.pending_subscription,
    )


def run_confirm(inp: ConfirmInput, repo: SubscriberRepoPort) -> ConfirmOutput:
    """Handle the confirm link (Atomic Handler)."""
    try:
        subscriber, applied = confirm(repo, inp.uuid)
    except InvalidTokenError:
        return ConfirmOutput(success=False, errors=[_invalid_token()])
    except DatastoreError as e:
        return ConfirmOutput(success=False, errors=[_datastore_failure("confirm", e)])

    if applied:
        logger.info(
            "Subscription confirmed for %s: %s", subscriber.inbox, subscriber.subscription.value
        )

    return ConfirmOutput(
        success=True,
        subscription=subscriber.subscription,
        state=state_of(subscriber),
        already_confirmed=not applied,
    )


def run_cancel(inp: CancelInput, repo: SubscriberRepoPort) -> CancelOutput:
    """Handle the cancel link (Atomic Handler)."""
    try:
        subscriber, discarded = cancel(repo, inp.uuid)
    except InvalidTokenError:
        return CancelOutput(success=False, errors=[_invalid_token()])
    except DatastoreError as e:
        return CancelOutput(success=False, errors=[_datastore_failure("cancel", e)])

    return CancelOutput(
        success=True,
        subscription=subscriber.subscription,
        already_cancelled=not discarded,
    )


def run_resolve_inbox(inp: ResolveInboxInput, repo: SubscriberRepoPort) -> ResolveInboxOutput:
    """Look up the inbox behind an unsubscribe link."""
    try:
        subscriber = repo.get_by_uuid(inp.uuid) if inp.uuid else None
    except DatastoreError as e:
        return ResolveInboxOutput(success=False, errors=[_datastore_failure("resolve", e)])

    if subscriber is None:
        return ResolveInboxOutput(success=False, errors=[_invalid_token()])

    return ResolveInboxOutput(
        success=True,
        inbox=subscriber.inbox,
        subscription=subscriber.subscription,
    )


def run(
    inp: SubscribeInput | UnsubscribeInput | ConfirmInput | CancelInput | ResolveInboxInput,
    *,
    repo: SubscriberRepoPort,
    email_sender: SubscriptionEmailSenderPort | None = None,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput | UnsubscribeOutput | ConfirmOutput | CancelOutput | ResolveInboxOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Input command
        repo: Repository port (Required)
        email_sender: Email sender port (Optional)
        config: Configuration (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, SubscribeInput):
        return run_subscribe(inp, repo, email_sender=email_sender, config=config)
    elif isinstance(inp, UnsubscribeInput):
        return run_unsubscribe(inp, repo, email_sender=email_sender, config=config)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, repo)
    elif isinstance(inp, CancelInput):
        return run_cancel(inp, repo)
    elif isinstance(inp, ResolveInboxInput):
        return run_resolve_inbox(inp, repo)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
