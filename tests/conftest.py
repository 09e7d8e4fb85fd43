import os

# must be set before anything under hangout is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTH_VERIFY_MODE"] = "hs256"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "INFO"
os.environ["EVENT_CREATION_PASSPHRASE"] = "open-sesame"

from datetime import timedelta

import pytest
from jose import jwt

import hangout.core.init_db  # noqa: F401  (registers every model on Base)
from hangout.core.db import Base, SessionLocal, engine
from hangout.core.time import utcnow
from hangout.models.gathering import Gathering
from hangout.models.profile import Profile
from hangout.schemas.enums import Gender, GatheringKind, Orientation
from hangout.services.broadcaster import PresenceBroadcaster
from hangout.services.checkin import CheckinService
from hangout.services.lifecycle import GatheringLifecycle
from hangout.services.notifier import NotificationError
from hangout.services.worker import BackgroundWorker

DC = (38.9072, -77.0369)


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def emit(self, event, data, room=None):
        self.sent.append((event, data, room))

    def named(self, event):
        return [(data, room) for (name, data, room) in self.sent if name == event]


class StubNotifier:
    sms_enabled = True
    email_enabled = True

    def __init__(self):
        self.sms = []
        self.emails = []
        self.fail_sms = False

    def send_sms(self, phone_number, body):
        if self.fail_sms:
            raise NotificationError("carrier down")
        self.sms.append((phone_number, body))
        return True

    def send_email(self, to, subject, html):
        self.emails.append((to, subject, html))
        return True


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, "test-secret", algorithm="HS256")


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def broadcaster(transport):
    return PresenceBroadcaster(transport)


@pytest.fixture
def worker():
    return BackgroundWorker(inline=True)


@pytest.fixture
def notifier():
    return StubNotifier()


@pytest.fixture
def service(db, broadcaster, worker, notifier):
    return CheckinService(db, broadcaster, worker, notifier, session_factory=SessionLocal)


@pytest.fixture
def lifecycle(db, broadcaster):
    return GatheringLifecycle(db, broadcaster, geocoder=lambda address: DC)


@pytest.fixture
def make_profile(db):
    def _make(user_id, gender="male", orientation="straight", name=None, phone=None, email=None):
        p = Profile(
            user_id=user_id,
            name=name or user_id.title(),
            age=30,
            gender=Gender(gender),
            orientation=Orientation(orientation),
            interests=["music"],
            phone_number=phone,
            email=email,
        )
        db.add(p)
        db.commit()
        return p

    return _make


@pytest.fixture
def make_event(db):
    def _make(event_id="evt-1", lat=DC[0], lng=DC[1], start=None, end=None, name="Rooftop Mixer"):
        now = utcnow()
        e = Gathering(
            id=event_id,
            kind=GatheringKind.event,
            name=name,
            address="1 Main St, Washington, DC",
            lat=lat,
            lng=lng,
            start_time=start or now - timedelta(hours=1),
            end_time=end or now + timedelta(hours=2),
        )
        db.add(e)
        db.commit()
        return e

    return _make
