import base64
import os

# must be set before taskboard.config builds its settings
os.environ.setdefault("TASKBOARD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TASKBOARD_SEED_DEFAULT_USER", "false")

import pytest
from fastapi.testclient import TestClient

from taskboard.auth import get_sessions, get_storage
from taskboard.main import app
from taskboard.sessions import SessionStore
from taskboard.storage import Storage


@pytest.fixture
def storage():
    return Storage()


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def make_client(storage, sessions):
    """Build clients sharing one store; each client has its own cookie jar."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_sessions] = lambda: sessions

    def _make(**kwargs):
        return TestClient(app, **kwargs)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def basic_auth(username, password):
    raw = f"{username}:{password}".encode("utf-8")
    return {"Authorization": "Basic " + base64.b64encode(raw).decode("ascii")}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, username="alice", password="pw1"):
    """Register a user; the client keeps the session cookie."""
    r = client.post("/api/register", json={"username": username, "password": password})
    assert r.status_code == 201, r.text
    return r.json()
