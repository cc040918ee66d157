"""
Outgoing mail port.

The subscription flow answers every subscribe or unsubscribe request with
one mail carrying the confirm and cancel links. Transports plug in behind
EmailPort; the dev adapter records mails instead of delivering them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # recorded but not delivered


@dataclass
class EmailResult:
    """Outcome of one send attempt."""

    status: EmailStatus
    recipient: str = ""
    message_id: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status == EmailStatus.SENT

    @classmethod
    def skipped(cls, recipient: str, reason: str) -> EmailResult:
        return cls(status=EmailStatus.SKIPPED, recipient=recipient, error=reason)

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(status=EmailStatus.FAILED, recipient=recipient, error=error)


class EmailPort(Protocol):
    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """Send one mail. Transport errors come back as FAILED, never raised."""
        ...


# {site_name} is filled in by the sender
DEFAULT_SUBSCRIBE_SUBJECT = "Confirm your subscription to {site_name}"
DEFAULT_UNSUBSCRIBE_SUBJECT = "Confirm your unsubscription from {site_name}"
