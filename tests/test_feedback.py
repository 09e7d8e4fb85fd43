from datetime import timedelta

import pytest

from hangout.core.db import SessionLocal
from hangout.core.errors import BadRequestError, ExpiredError, NotFoundError
from hangout.core.time import utcnow
from hangout.services.feedback import get_feedback_request, request_feedback, submit_feedback


def test_request_feedback_once_per_user_and_gathering(make_profile, notifier):
    make_profile("me", email="me@example.com")

    req = request_feedback(SessionLocal, notifier, "me", "evt-1", "Rooftop Mixer", "1 Main St")

    assert req is not None
    assert len(req.token) == 64
    assert req.email_sent is True
    assert req.expires_at - req.created_at == timedelta(days=7)
    [(to, subject, html)] = notifier.emails
    assert to == "me@example.com"
    assert "Rooftop Mixer" in subject
    assert f"/event-feedback?token={req.token}" in html

    assert request_feedback(SessionLocal, notifier, "me", "evt-1", "Rooftop Mixer", "1 Main St") is None
    assert len(notifier.emails) == 1


def test_request_feedback_without_email_on_file(make_profile, notifier):
    make_profile("quiet")

    req = request_feedback(SessionLocal, notifier, "quiet", "evt-1")

    assert req.email_sent is False
    assert notifier.emails == []


def test_get_feedback_request_states(db, make_profile, notifier):
    make_profile("me")
    req = request_feedback(SessionLocal, notifier, "me", "evt-1", "Rooftop Mixer")

    with pytest.raises(NotFoundError):
        get_feedback_request(db, "not-a-token")

    assert get_feedback_request(db, req.token).gathering_name == "Rooftop Mixer"

    with pytest.raises(ExpiredError):
        get_feedback_request(db, req.token, now=utcnow() + timedelta(days=8))


def test_submit_feedback(db, make_profile, notifier):
    make_profile("me")
    req = request_feedback(SessionLocal, notifier, "me", "evt-1")

    saved = submit_feedback(db, req.token, 5, "  great crowd  ")

    assert saved.rating == 5
    assert saved.comment == "great crowd"
    assert saved.submitted is True

    with pytest.raises(BadRequestError):
        submit_feedback(db, req.token, 4)
