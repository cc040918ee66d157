"""
Dev mail adapter.

Nothing is delivered. Each mail lands in an in-memory outbox and the
links it carries are logged, so a developer can click the confirm or
cancel link straight from the server log and tests can read the token
back out of the outbox.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from cmsmail.core.ports.email import EmailResult

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(r"https?://\S+")


@dataclass
class OutboxEntry:
    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    queued_at: datetime

    @property
    def links(self) -> list[str]:
        """URLs found in the plain text body, in order."""
        return _LINK_RE.findall(self.body_text)


@dataclass
class DevEmailAdapter:
    """EmailPort that records instead of sending. Always reports SKIPPED."""

    outbox: list[OutboxEntry] = field(default_factory=list)
    log_level: int = logging.INFO
    log_links: bool = True

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        entry = OutboxEntry(
            id=f"dev-{uuid4().hex[:12]}",
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text or "",
            queued_at=datetime.now(UTC),
        )
        self.outbox.append(entry)

        logger.log(self.log_level, "Mail %s to %s: %s", entry.id, recipient, subject)
        if self.log_links:
            for link in entry.links:
                logger.log(self.log_level, "  link: %s", link)

        result = EmailResult.skipped(recipient, "dev adapter, mail not delivered")
        result.message_id = entry.id
        return result

    def get_last_email(self) -> OutboxEntry | None:
        return self.outbox[-1] if self.outbox else None

    def mails_to(self, recipient: str) -> list[OutboxEntry]:
        return [m for m in self.outbox if m.recipient == recipient]

    def clear(self) -> None:
        self.outbox.clear()
