import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hangout.core.db import Base
from hangout.core.errors import NotFoundError
from hangout.models.gathering import Gathering
from hangout.schemas.enums import GatheringKind
from hangout.services.presence_registry import PresenceRegistry


@pytest.fixture
def registry(db):
    return PresenceRegistry(db)


def test_check_in_unknown_gathering(registry):
    with pytest.raises(NotFoundError):
        registry.check_in("u1", "nope")


def test_check_in_is_idempotent(registry, make_event):
    make_event("a")

    _, first = registry.check_in("u1", "a", lat=1.0, lng=2.0)
    record, again = registry.check_in("u1", "a")

    assert registry.list_present("a") == {"u1"}
    assert first is True
    assert again is False
    assert registry.count_present("a") == 1
    assert record.gathering_id == "a"
    # coordinates survive a check-in that did not send any
    assert (record.lat, record.lng) == (1.0, 2.0)


def test_user_is_in_at_most_one_gathering(registry, make_event):
    make_event("a")
    make_event("b")

    registry.check_in("u1", "a")
    registry.check_in("u1", "b")

    assert registry.list_present("a") == set()
    assert registry.list_present("b") == {"u1"}
    assert registry.get_record("u1").gathering_id == "b"


def test_check_out_absent_user_is_noop(registry, make_event):
    make_event("a")
    assert registry.check_out("ghost", "a") is False
    assert registry.get_record("ghost") is None


def test_stale_check_out_keeps_newer_check_in(registry, make_event):
    make_event("a")
    make_event("b")
    registry.check_in("u1", "a")
    registry.check_in("u1", "b")

    assert registry.check_out("u1", "a") is False
    assert registry.get_record("u1").gathering_id == "b"
    assert registry.list_present("b") == {"u1"}


def test_check_out_clears_record(registry, make_event):
    make_event("a")
    registry.check_in("u1", "a")

    assert registry.check_out("u1", "a") is True
    assert registry.get_record("u1").gathering_id is None
    assert registry.count_present("a") == 0


def test_list_present_excluding(registry, make_event):
    make_event("a")
    registry.check_in("u1", "a")
    registry.check_in("u2", "a")

    assert registry.list_present("a", excluding="u1") == {"u2"}


def test_clear_gathering(registry, make_event):
    make_event("a")
    make_event("b")
    registry.check_in("u1", "a")
    registry.check_in("u2", "a")
    registry.check_in("u3", "b")

    assert registry.clear_gathering("a") == ["u1", "u2"]
    assert registry.count_present("a") == 0
    assert registry.get_record("u1").gathering_id is None
    assert registry.get_record("u3").gathering_id == "b"


def test_clear_all(registry, make_event):
    make_event("a")
    make_event("b")
    registry.check_in("u1", "a")
    registry.check_in("u2", "b")

    evicted = registry.clear_all()

    assert evicted == {"a": ["u1"], "b": ["u2"]}
    assert registry.count_present("a") == registry.count_present("b") == 0
    assert registry.get_record("u1").gathering_id is None
    assert registry.get_record("u2").gathering_id is None


@pytest.fixture
def file_sessions(tmp_path):
    """Session factory over a file-backed database so each thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'presence.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, future=True)

    with factory() as s:
        for gathering_id in ("a", "b"):
            s.add(Gathering(id=gathering_id, kind=GatheringKind.place, name=gathering_id.upper()))
        s.commit()

    yield factory
    engine.dispose()


def _run_threads(count, target):
    errors = []
    start = threading.Barrier(count)

    def runner(n):
        try:
            start.wait()
            target(n)
        except Exception as e:  # collected and asserted on below
            errors.append(e)

    threads = [threading.Thread(target=runner, args=(n,)) for n in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


def test_concurrent_check_ins_report_one_join_per_user(file_sessions):
    joins = []

    def worker(n):
        with file_sessions() as s:
            registry = PresenceRegistry(s)
            for _ in range(5):
                _, joined = registry.check_in(f"u{n}", "a")
                joins.append((n, joined))

    assert _run_threads(8, worker) == []

    with file_sessions() as s:
        assert PresenceRegistry(s).count_present("a") == 8
    for n in range(8):
        assert [j for user, j in joins if user == n].count(True) == 1


def test_concurrent_moves_keep_one_location(file_sessions):
    def worker(n):
        with file_sessions() as s:
            registry = PresenceRegistry(s)
            for i in range(10):
                gathering_id = "a" if (n + i) % 2 else "b"
                registry.check_in("u1", gathering_id)
                if i % 3 == 0:
                    registry.check_out("u1", gathering_id)

    assert _run_threads(4, worker) == []

    with file_sessions() as s:
        registry = PresenceRegistry(s)
        present_in = [g for g in ("a", "b") if "u1" in registry.list_present(g)]
        record = registry.get_record("u1")

        assert len(present_in) <= 1
        assert present_in == ([record.gathering_id] if record.gathering_id else [])
