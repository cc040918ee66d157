"""Unit tests for the subscription mail sender."""

from cmsmail.adapters.dev_email import DevEmailAdapter
from cmsmail.adapters.subscription_mail import SubscriptionEmailSender, describe_selection
from cmsmail.components.subscription import Subscription
from cmsmail.core.ports.email import EmailResult


class FailingEmail:
    def send_email(self, recipient, subject, body_html, body_text=None):
        return EmailResult.failed(recipient, "relay refused")


def test_describe_selection():
    assert describe_selection(Subscription.EN_FA) == "English and Persian"
    assert describe_selection(Subscription.FA) == "Persian"
    assert describe_selection(Subscription.NONE) == "no language"


def test_subscribe_mail_carries_links():
    adapter = DevEmailAdapter()
    sender = SubscriptionEmailSender(adapter)

    ok = sender.send_request_email(
        "a@x.com",
        Subscription.EN,
        "http://t/confirm?uuid=1",
        "http://t/cancel?uuid=1",
        "Test Site",
    )

    assert ok is True
    mail = adapter.get_last_email()
    assert mail is not None
    assert mail.recipient == "a@x.com"
    assert mail.subject == "Confirm your subscription to Test Site"
    assert "http://t/confirm?uuid=1" in mail.body_text
    assert "http://t/cancel?uuid=1" in mail.body_text
    assert "English" in mail.body_text


def test_unsubscribe_link_rendered():
    adapter = DevEmailAdapter()
    SubscriptionEmailSender(adapter).send_request_email(
        "a@x.com",
        Subscription.EN,
        "http://t/confirm?uuid=1",
        "http://t/cancel?uuid=1",
        "Test Site",
        unsubscribe_url="http://t/unsubscribe?uuid=1&inbox=a%40x.com",
    )

    mail = adapter.get_last_email()
    assert mail is not None
    assert mail.links[-1] == "http://t/unsubscribe?uuid=1&inbox=a%40x.com"
    assert "http://t/unsubscribe?uuid=1&amp;inbox=a%40x.com" in mail.body_html


def test_no_unsubscribe_link_without_url():
    adapter = DevEmailAdapter()
    SubscriptionEmailSender(adapter).send_request_email(
        "a@x.com", Subscription.EN, "http://t/c", "http://t/x", "S"
    )

    mail = adapter.get_last_email()
    assert mail is not None
    assert "Unsubscribe" not in mail.body_text
    assert "Unsubscribe" not in mail.body_html

def test_unsubscribe_subject():
    adapter = DevEmailAdapter()
    SubscriptionEmailSender(adapter).send_request_email(
        "a@x.com", Subscription.NONE, "c", "x", "Test Site", unsubscribing=True
    )
    mail = adapter.get_last_email()
    assert mail is not None
    assert mail.subject == "Confirm your unsubscription from Test Site"


def test_html_links_are_escaped():
    adapter = DevEmailAdapter()
    SubscriptionEmailSender(adapter).send_request_email(
        "a@x.com", Subscription.EN, "http://t/c?uuid=1&x=2", "http://t/x", "S"
    )
    mail = adapter.get_last_email()
    assert mail is not None
    assert "uuid=1&amp;x=2" in mail.body_html


def test_failed_delivery_returns_false():
    sender = SubscriptionEmailSender(FailingEmail())
    assert sender.send_request_email("a@x.com", Subscription.EN, "c", "x", "S") is False
