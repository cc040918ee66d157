"""
Subscription component.

Confirmed subscribe/unsubscribe flow for the bilingual mailing list.
"""

from cmsmail.components.subscription.component import (
    EMAIL_REGEX,
    allocate_uuid,
    build_link,
    cancel,
    confirm,
    dispatch_request_email,
    generate_uuid,
    normalize_inbox,
    request_subscribe,
    request_unsubscribe,
    requested_subscription,
    run,
    run_cancel,
    run_confirm,
    run_resolve_inbox,
    run_subscribe,
    run_unsubscribe,
    state_of,
    unsubscribe_target,
)
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
    SubscriptionError,
    UnsubscribeInput,
    UnsubscribeOutput,
    ValidationError,
)
from cmsmail.components.subscription.ports import (
    SubscriberRepoPort,
    SubscriptionEmailSenderPort,
)

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_unsubscribe",
    "run_confirm",
    "run_cancel",
    "run_resolve_inbox",
    # Pure functions
    "normalize_inbox",
    "requested_subscription",
    "unsubscribe_target",
    "state_of",
    "generate_uuid",
    "allocate_uuid",
    "request_subscribe",
    "request_unsubscribe",
    "confirm",
    "cancel",
    "build_link",
    "dispatch_request_email",
    # Constants
    "EMAIL_REGEX",
    # Models
    "Language",
    "Subscription",
    "Subscriber",
    "SubscriberState",
    "SubscriptionConfig",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "UnsubscribeInput",
    "UnsubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "CancelInput",
    "CancelOutput",
    "ResolveInboxInput",
    "ResolveInboxOutput",
    "ValidationError",
    # Errors
    "SubscriptionError",
    "InvalidTokenError",
    "InvalidInboxError",
    # Ports
    "SubscriberRepoPort",
    "SubscriptionEmailSenderPort",
]
