from datetime import timedelta

import pytest

from hangout.core.db import SessionLocal
from hangout.core.errors import ExpiredError, MissingInputError, MissingLocationError, NotFoundError
from hangout.core.time import utcnow
from hangout.models.feedback import FeedbackRequest
from hangout.schemas.enums import CheckinStatus, GatheringKind
from hangout.services.checkin import CheckinService


def test_check_in_inside_radius(service, make_event, make_profile):
    event = make_event()
    make_profile("me")

    result = service.check_in_event("me", event.id, 38.9100, -77.0395)

    assert result.status == CheckinStatus.checked_in
    assert result.presence.gathering_id == event.id
    assert service.registry.list_present(event.id) == {"me"}


def test_check_in_outside_radius_is_soft_rejection(service, make_event, make_profile):
    event = make_event()
    make_profile("me")

    result = service.check_in_event("me", event.id, 39.1, -77.0)

    assert result.status == CheckinStatus.too_far
    assert result.presence is None
    assert result.gathering.id == event.id
    assert "miles away" in result.message
    assert service.registry.count_present(event.id) == 0


def test_degree_box_geofence(db, broadcaster, worker, notifier, make_event, make_profile):
    event = make_event()
    make_profile("me")
    boxed = CheckinService(db, broadcaster, worker, notifier, session_factory=SessionLocal, geofence="degree_box")

    # about 0.9 km north: inside the 1 mile radius, outside the 0.005 degree box
    result = boxed.check_in_event("me", event.id, 38.9152, -77.0369)
    assert result.status == CheckinStatus.too_far
    assert "miles away" in result.message

    assert boxed.check_in_event("me", event.id, 38.9110, -77.0330).checked_in


def test_unknown_geofence_mode(db, broadcaster, worker, notifier):
    with pytest.raises(ValueError):
        CheckinService(db, broadcaster, worker, notifier, geofence="polygon")


def test_check_in_hard_errors(service, make_event, make_profile):
    now = utcnow()
    make_event("over", start=now - timedelta(hours=3), end=now - timedelta(minutes=1))
    make_event("live")
    make_profile("me")

    with pytest.raises(NotFoundError):
        service.check_in_event("me", "missing", 38.9072, -77.0369)
    with pytest.raises(ExpiredError):
        service.check_in_event("me", "over", 38.9072, -77.0369)
    with pytest.raises(MissingInputError):
        service.check_in_event("me", "live", None, None)
    with pytest.raises(MissingLocationError):
        service.check_in_event("no-profile", "live", 38.9072, -77.0369)


def test_repeat_check_in_keeps_one_presence(service, make_event, make_profile):
    event = make_event()
    make_profile("me")

    service.check_in_event("me", event.id, 38.9072, -77.0369)
    service.check_in_event("me", event.id, 38.9072, -77.0369)

    assert service.registry.count_present(event.id) == 1


def test_repeat_check_in_does_not_notify_again(service, make_event, make_profile, transport, notifier):
    event = make_event()
    make_profile("me", gender="male", orientation="straight", name="Sam")
    make_profile("her", gender="female", orientation="straight", phone="+15550001111")
    service.check_in_event("her", event.id, 38.9072, -77.0369)
    transport.sent.clear()

    for lat in (38.9072, 38.9075, 38.9080):
        result = service.check_in_event("me", event.id, lat, -77.0369)
        assert result.checked_in
        assert [p.user_id for p in result.users] == ["her"]

    assert len(notifier.sms) == 1
    assert len(transport.named("user-checked-in")) == 1
    # the record still follows the latest coordinates
    assert service.registry.get_record("me").lat == 38.9080


def test_check_in_returns_compatible_users_and_notifies_them(service, make_event, make_profile, transport, notifier):
    event = make_event()
    make_profile("me", gender="male", orientation="straight", name="Sam")
    make_profile("her", gender="female", orientation="straight", phone="+15550001111")
    make_profile("him", gender="male", orientation="straight", phone="+15550002222")
    service.check_in_event("her", event.id, 38.9072, -77.0369)
    service.check_in_event("him", event.id, 38.9072, -77.0369)
    notifier.sms.clear()
    transport.sent.clear()

    result = service.check_in_event("me", event.id, 38.9072, -77.0369)

    assert [p.user_id for p in result.users] == ["her"]
    assert notifier.sms == [("+15550001111", "Sam just checked in at Rooftop Mixer! Open the app to connect.")]

    [(data, room)] = transport.named("user-checked-in")
    assert room == f"gathering:{event.id}"
    assert data["gatheringId"] == event.id
    assert data["user"]["userId"] == "me"
    assert "phoneNumber" not in data["user"]


def test_sms_failure_does_not_fail_check_in(service, make_event, make_profile, notifier):
    event = make_event()
    make_profile("me", gender="female", orientation="bisexual")
    make_profile("other", gender="male", orientation="straight", phone="+15550003333")
    service.check_in_event("other", event.id, 38.9072, -77.0369)
    notifier.fail_sms = True

    result = service.check_in_event("me", event.id, 38.9072, -77.0369)

    assert result.checked_in
    assert [p.user_id for p in result.users] == ["other"]


def test_moving_announces_departure_from_old_room(service, make_event, make_profile, transport):
    make_event("a")
    make_event("b")
    make_profile("me")

    service.check_in_event("me", "a", 38.9072, -77.0369)
    service.check_in_event("me", "b", 38.9072, -77.0369)

    assert transport.named("user-checked-out") == [({"userId": "me", "gatheringId": "a"}, "gathering:a")]
    assert service.registry.list_present("a") == set()


def test_double_check_out_creates_one_feedback_request(db, service, make_event, make_profile, transport, notifier):
    event = make_event()
    make_profile("me", email="me@example.com")
    service.check_in_event("me", event.id, 38.9072, -77.0369)

    assert service.check_out("me", event.id) is True
    assert service.check_out("me", event.id) is False

    rows = db.query(FeedbackRequest).filter(FeedbackRequest.user_id == "me").all()
    assert len(rows) == 1
    assert rows[0].gathering_name == "Rooftop Mixer"
    assert len(notifier.emails) == 1
    assert len(transport.named("user-checked-out")) == 1


def test_check_out_unknown_gathering(service):
    with pytest.raises(NotFoundError):
        service.check_out("me", "missing")


def test_list_compatible(service, make_event, make_profile):
    event = make_event()
    make_profile("viewer", gender="male", orientation="gay")
    make_profile("m", gender="male", orientation="gay")
    make_profile("w", gender="female", orientation="straight")
    for uid in ("viewer", "m", "w"):
        service.check_in_event(uid, event.id, 38.9072, -77.0369)

    assert [p.user_id for p in service.list_compatible("viewer", event.id)] == ["m"]

    with pytest.raises(NotFoundError):
        service.list_compatible("nobody", event.id)


def test_toggle_interest(service, make_event, transport):
    event = make_event()

    assert service.toggle_interest("me", event.id) == (True, 1)
    assert service.toggle_interest("you", event.id) == (True, 2)
    assert service.toggle_interest("me", event.id) == (False, 1)

    data, room = transport.named("event-going-updated")[-1]
    assert room is None
    assert data == {"gatheringId": event.id, "count": 1, "userId": "me"}


def test_toggle_interest_requires_event(service, make_profile):
    make_profile("me")
    service.check_in_place("me", "place-1", place_name="Bar")

    with pytest.raises(NotFoundError):
        service.toggle_interest("me", "place-1")
    with pytest.raises(NotFoundError):
        service.toggle_interest("me", "missing")


def test_place_check_in_creates_place(db, service, make_profile):
    make_profile("me", gender="female", orientation="straight")
    make_profile("him", gender="male", orientation="straight")

    service.check_in_place("him", "gp-123", place_name="The Lounge", place_address="9 K St")
    result = service.check_in_place("me", "gp-123", place_name="Ignored Later Name")

    assert result.checked_in
    assert result.gathering.kind == GatheringKind.place
    assert result.gathering.name == "The Lounge"
    assert [p.user_id for p in result.users] == ["him"]
    assert service.count_at_place("gp-123") == 2


def test_place_check_in_requires_place_id(service, make_profile):
    make_profile("me")
    with pytest.raises(MissingInputError):
        service.check_in_place("me", None)
