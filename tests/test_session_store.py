import pytest

from app.core.errors import SessionNotFoundError
from app.services.session_store import SessionStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sessions(clock):
    return SessionStore(idle_ttl=60, clock=clock)


def test_idle_session_is_evicted(sessions, clock):
    abandoned = sessions.create(1).open()
    clock.now += 61

    sessions.create(1).open()

    assert len(sessions) == 1
    with pytest.raises(SessionNotFoundError):
        sessions.get(1, abandoned.session_id)


def test_get_keeps_session_alive(sessions, clock):
    active = sessions.create(1).open()
    clock.now += 50
    sessions.get(1, active.session_id)
    clock.now += 50

    assert sessions.get(1, active.session_id) is active


def test_busy_session_is_not_evicted(sessions, clock):
    busy = sessions.create(1).open()
    busy.committing = True
    clock.now += 120

    assert sessions.get(1, busy.session_id) is busy


def test_abandoned_sessions_do_not_accumulate(sessions, clock):
    for _ in range(20):
        sessions.create(1).open()
        clock.now += 61
    assert len(sessions) == 1


def test_discard_and_private_lookup(sessions):
    session = sessions.create(1).open()
    with pytest.raises(SessionNotFoundError):
        sessions.get(2, session.session_id)

    sessions.discard(1, session.session_id)
    assert len(sessions) == 0
    assert sessions.list_for_user(1) == []
