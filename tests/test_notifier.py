import httpx
import pytest

from hangout.services import notifier as notifier_mod
from hangout.services.notifier import NotificationError, Notifier, feedback_email


def test_unconfigured_channels_are_noops(monkeypatch):
    def no_network(*_args, **_kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(notifier_mod.httpx, "post", no_network)
    n = Notifier()

    assert n.send_sms("+15550001111", "hi") is False
    assert n.send_email("a@b.c", "s", "<p>x</p>") is False


def test_send_sms_posts_to_twilio(monkeypatch):
    seen = {}

    def fake_post(url, *, data=None, auth=None, timeout=None, **_kwargs):
        seen.update(url=url, data=data, auth=auth)
        return httpx.Response(201, json={"sid": "SM1"})

    monkeypatch.setattr(notifier_mod.httpx, "post", fake_post)
    n = Notifier(twilio_sid="AC1", twilio_token="tok", sms_from="+15550000000")

    assert n.send_sms("+15550001111", "hello") is True
    assert seen["url"].endswith("/Accounts/AC1/Messages.json")
    assert seen["data"] == {"To": "+15550001111", "From": "+15550000000", "Body": "hello"}
    assert seen["auth"] == ("AC1", "tok")


def test_email_failure_raises(monkeypatch):
    monkeypatch.setattr(
        notifier_mod.httpx, "post", lambda *_a, **_k: httpx.Response(422, text="bad from address")
    )

    with pytest.raises(NotificationError):
        Notifier(resend_api_key="re_123", email_from="x@y.z").send_email("a@b.c", "s", "<p>x</p>")


def test_feedback_email_mentions_link_and_expiry():
    mail = feedback_email("Rooftop Mixer", None, "https://app/event-feedback?token=abc", ttl_days=3)

    assert mail["subject"] == "How was your night at Rooftop Mixer?"
    assert "https://app/event-feedback?token=abc" in mail["html"]
    assert "N/A" in mail["html"]
    assert "3 days" in mail["html"]
