import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from memberarea.app import create_app
from memberarea.auth.passwords import hash_password
from memberarea.auth.users import ROLE_ADMIN, ROLE_USER, UserStore
from memberarea.config import Settings

PASSWORD = "pw1"


@pytest.fixture()
def settings() -> Settings:
    # a single hashing round keeps the suite fast; production default is 12
    return Settings(
        session_secret="test-signing-secret",
        mongodb_session_secret="test-encryption-secret",
        password_hash_rounds=1,
    )


@pytest.fixture()
def database():
    return mongomock.MongoClient()["memberarea_test"]


@pytest.fixture()
def users(database) -> UserStore:
    return UserStore(database["users"])


@pytest.fixture()
def app(settings, database):
    return create_app(settings, database=database)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_user(users):
    """Insert a user with a real hash; returns the stored record."""

    def _make(name="Ana", email="ana@x.com", password=PASSWORD, role=ROLE_USER):
        return users.create(name=name, email=email, password_hash=hash_password(password, rounds=1), role=role)

    return _make


@pytest.fixture()
def login(client):
    def _login(email="ana@x.com", password=PASSWORD):
        r = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
        assert r.status_code == 302, r.text
        return r

    return _login


@pytest.fixture()
def admin_client(client, make_user, login):
    make_user(name="Root", email="root@x.com", role=ROLE_ADMIN)
    login("root@x.com")
    return client
