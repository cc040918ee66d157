"""
Subscription component ports.

Protocol interfaces for subscriber persistence and mail delivery.
"""

from __future__ import annotations

from typing import Protocol

from cmsmail.components.subscription.models import Subscriber, Subscription


class SubscriberRepoPort(Protocol):
    """
    Subscriber repository interface.

    Every method may raise DatastoreError.
    """

    def get_by_inbox(self, inbox: str) -> Subscriber | None:
        """Exact-match lookup by inbox."""
        ...

    def get_by_uuid(self, uuid: str) -> Subscriber | None:
        """Exact-match lookup by token."""
        ...

    def insert(self, subscriber: Subscriber) -> Subscriber:
        """Insert a new row. Raises IntegrityViolation on a duplicate inbox or uuid."""
        ...

    def update_pending(self, inbox: str, pending: Subscription | None) -> None:
        """Update only pending_subscription."""
        ...

    def update_subscription(
        self,
        inbox: str,
        subscription: Subscription,
        pending: Subscription | None,
    ) -> None:
        """Update the confirmed subscription together with the pending one."""
        ...


class SubscriptionEmailSenderPort(Protocol):
    """
    Email sender interface for subscription requests.

    Delivers the confirm and cancel links of a pending request.
    """

    def send_request_email(
        self,
        recipient_email: str,
        pending: Subscription,
        confirm_url: str,
        cancel_url: str,
        site_name: str,
        unsubscribing: bool = False,
        unsubscribe_url: str | None = None,
    ) -> bool:
        """
        Send the confirmation mail of a subscribe/unsubscribe request.

        Args:
            recipient_email: Inbox to send to
            pending: Requested language selection
            confirm_url: Full URL applying the request
            cancel_url: Full URL discarding the request
            site_name: Site name for the mail body
            unsubscribing: Whether the request narrows the subscription
            unsubscribe_url: Standing link to the unsubscribe form (optional)

        Returns:
            True if the mail was handed over successfully
        """
        ...
