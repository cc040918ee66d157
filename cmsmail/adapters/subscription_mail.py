"""
Subscription mail sender.

Renders the confirm/cancel mail of a pending subscribe or unsubscribe
request and hands it to an EmailPort implementation.
"""

from __future__ import annotations

import logging
from html import escape

from cmsmail.components.subscription.models import Language, Subscription
from cmsmail.core.ports.email import (
    DEFAULT_SUBSCRIBE_SUBJECT,
    DEFAULT_UNSUBSCRIBE_SUBJECT,
    EmailPort,
    EmailStatus,
)

logger = logging.getLogger(__name__)

_LANGUAGE_NAMES = {
    Language.EN: "English",
    Language.FA: "Persian",
}


def describe_selection(selection: Subscription) -> str:
    """Human readable list of the languages in a selection."""
    names = [_LANGUAGE_NAMES[lang] for lang in (Language.EN, Language.FA) if lang in selection.languages]
    if not names:
        return "no language"
    return " and ".join(names)


class SubscriptionEmailSender:
    """Implements SubscriptionEmailSenderPort on top of an EmailPort."""

    def __init__(self, email: EmailPort) -> None:
        self.email = email

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
        if unsubscribing:
            subject = DEFAULT_UNSUBSCRIBE_SUBJECT.format(site_name=site_name)
            summary = f"After confirming you will receive: {describe_selection(pending)}."
        else:
            subject = DEFAULT_SUBSCRIBE_SUBJECT.format(site_name=site_name)
            summary = f"You asked to receive the {describe_selection(pending)} mailings."

        text_lines = [
            summary,
            "",
            f"Confirm the request: {confirm_url}",
            f"Cancel the request: {cancel_url}",
            "",
            "If you did not make this request you can ignore this mail.",
        ]
        html_parts = [
            f"<p>{escape(summary)}</p>",
            f'<p><a href="{escape(confirm_url)}">Confirm</a> | '
            f'<a href="{escape(cancel_url)}">Cancel</a></p>',
            "<p>If you did not make this request you can ignore this mail.</p>",
        ]
        if unsubscribe_url:
            text_lines.append(f"Unsubscribe or change languages: {unsubscribe_url}")
            html_parts.append(
                f'<p><a href="{escape(unsubscribe_url)}">Unsubscribe</a></p>'
            )
        body_text = "\n".join(text_lines)
        body_html = "".join(html_parts)

        result = self.email.send_email(recipient_email, subject, body_html, body_text)
        if result.status == EmailStatus.FAILED:
            logger.error("Mail to %s failed: %s", recipient_email, result.error)
            return False
        return True
