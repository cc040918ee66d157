"""
Subscription component models.

Data models for the public subscribe/unsubscribe flow of the bilingual
mailing list.

State machine (derived from the stored row, see component.state_of):
- unregistered → pending_confirmation (subscribe request)
- pending_confirmation → confirmed (confirm link)
- confirmed / pending_confirmation → pending_unsubscription (unsubscribe request)
- pending_unsubscription → unsubscribed (confirm link)
- any pending state → previous state (cancel link)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# --- Value Types ---


class Language(Enum):
    """Content language of the mailing list."""

    EN = "en"
    FA = "fa"


class Subscription(Enum):
    """Language selection stored in subscription / pending_subscription."""

    NONE = "none"
    EN = "en"
    FA = "fa"
    EN_FA = "en_fa"

    @property
    def languages(self) -> frozenset[Language]:
        return _LANGUAGES_BY_SUBSCRIPTION[self]

    @classmethod
    def from_languages(cls, languages: frozenset[Language] | set[Language]) -> Subscription:
        """both → en_fa, one → that code, none → none."""
        if Language.EN in languages and Language.FA in languages:
            return cls.EN_FA
        if Language.EN in languages:
            return cls.EN
        if Language.FA in languages:
            return cls.FA
        return cls.NONE


_LANGUAGES_BY_SUBSCRIPTION: dict[Subscription, frozenset[Language]] = {
    Subscription.NONE: frozenset(),
    Subscription.EN: frozenset({Language.EN}),
    Subscription.FA: frozenset({Language.FA}),
    Subscription.EN_FA: frozenset({Language.EN, Language.FA}),
}


class SubscriberState(Enum):
    """Lifecycle state of a subscriber."""

    UNREGISTERED = "unregistered"  # No row for the inbox
    PENDING_CONFIRMATION = "pending_confirmation"  # Subscribe request awaiting confirm link
    CONFIRMED = "confirmed"  # Active subscription, nothing pending
    PENDING_UNSUBSCRIPTION = "pending_unsubscription"  # Narrowing request awaiting confirm link
    UNSUBSCRIBED = "unsubscribed"  # Row kept, no language subscribed


# --- Entity ---


@dataclass
class Subscriber:
    """
    Mailing-list subscriber entity.

    uuid is the opaque token carried by confirm/cancel/unsubscribe links; it
    never changes once assigned. pending_subscription is None when no
    request awaits confirmation.
    """

    inbox: str
    uuid: str
    subscription: Subscription = Subscription.NONE
    pending_subscription: Subscription | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for a subscribe request."""

    inbox: str
    languages: frozenset[Language]


@dataclass(frozen=True)
class UnsubscribeInput:
    """Input for an unsubscribe request; languages are the ones to drop."""

    inbox: str
    uuid: str
    languages: frozenset[Language]


@dataclass(frozen=True)
class ConfirmInput:
    """Input for applying the pending request."""

    uuid: str


@dataclass(frozen=True)
class CancelInput:
    """Input for discarding the pending request."""

    uuid: str


@dataclass(frozen=True)
class ResolveInboxInput:
    """Input for looking up the inbox behind a token."""

    uuid: str


# --- Output Models ---


@dataclass(frozen=True)
class ValidationError:
    """Validation or operation error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from a subscribe request."""

    success: bool
    uuid: str | None = None
    created: bool = False  # True when a new row was inserted
    pending_subscription: Subscription | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class UnsubscribeOutput:
    """Output from an unsubscribe request."""

    success: bool
    pending_subscription: Subscription | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from a confirmation."""

    success: bool
    subscription: Subscription | None = None
    state: SubscriberState | None = None
    already_confirmed: bool = False  # Idempotent success, nothing was pending
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class CancelOutput:
    """Output from a cancellation."""

    success: bool
    subscription: Subscription | None = None
    already_cancelled: bool = False  # Idempotent success, nothing was pending
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ResolveInboxOutput:
    """Output from an inbox lookup."""

    success: bool
    inbox: str | None = None
    subscription: Subscription | None = None
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionConfig:
    """Mailing-list configuration, taken from rules.yaml."""

    site_name: str = "CMS Mailing List"
    base_url: str = "http://localhost:8000"
    confirm_path: str = "/api/public/subscription/confirm"
    cancel_path: str = "/api/public/subscription/cancel"
    unsubscribe_path: str = "/api/public/subscription/unsubscribe"
    send_mail: bool = True


# --- Error Types ---


class SubscriptionError(Exception):
    """Base subscription error."""

    pass


class InvalidTokenError(SubscriptionError):
    """The token does not resolve to the given subscriber."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")


class InvalidInboxError(SubscriptionError):
    """The inbox is not a well-formed email address."""

    def __init__(self, inbox: str, reason: str) -> None:
        self.inbox = inbox
        self.reason = reason
        super().__init__(f"Invalid inbox '{inbox}': {reason}")
