from datetime import datetime, timedelta, timezone

import pytest

from memberarea.auth.session import SessionData, SessionStore, sign_session_id, unsign_session_id


class FakeClock:
    def __init__(self):
        # mongomock reaps TTL-indexed rows against the real clock
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(database, clock):
    s = SessionStore(database["sessions"], encryption_secret="secret", max_age=3600, clock=clock)
    s.ensure_indexes()
    return s


DATA = SessionData(authenticated=True, name="Ana", email="ana@x.com", role="user", user_id="0123456789abcdef01234567")


def test_create_and_load(store):
    sid = store.create(DATA)
    assert store.load(sid) == DATA


def test_payload_is_encrypted_at_rest(store, database):
    sid = store.create(DATA)
    row = database["sessions"].find_one({"_id": sid})
    assert "ana@x.com" not in row["payload"]
    assert "Ana" not in row["payload"]


def test_expired_session_is_dropped(store, clock, database):
    sid = store.create(DATA)
    clock.advance(3601)
    assert store.load(sid) is None
    assert database["sessions"].find_one({"_id": sid}) is None


def test_touch_slides_expiry(store, clock):
    sid = store.create(DATA)
    clock.advance(3000)
    store.touch(sid)
    clock.advance(3000)
    assert store.load(sid) == DATA


def test_destroy(store):
    sid = store.create(DATA)
    store.destroy(sid)
    assert store.load(sid) is None


def test_wrong_encryption_secret_reads_nothing(store, database, clock):
    sid = store.create(DATA)
    other = SessionStore(database["sessions"], encryption_secret="another", clock=clock)
    assert other.load(sid) is None


def test_missing_encryption_secret():
    with pytest.raises(RuntimeError):
        SessionStore(None, encryption_secret="")


def test_signed_token_round_trip_and_tampering():
    token = sign_session_id("abc", secret="s1")
    assert unsign_session_id(token, secret="s1") == "abc"
    assert unsign_session_id(token, secret="s2") is None
    assert unsign_session_id(token[:-2] + "xx", secret="s1") is None
    assert unsign_session_id("", secret="s1") is None
