"""Tests for POST /auth/login."""

from fastapi.testclient import TestClient

from helpers import fake_authenticator, login
from sessionkit.config import override_settings
from sessionkit.main import create_app
from sessionkit.session import MemoryStore, SessionSigner, StoreResult


def test_login_success(client, session_store):
    resp = login(client, "alice")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["user"]["email"] == "alice@example.com"
    assert "sessionId" in resp.cookies
    assert session_store.length() == 1


def test_login_stores_user_in_session(client, test_settings, session_store):
    login(client, "alice")
    session_id = SessionSigner(test_settings.session_secret).unsign(client.cookies.get("sessionId"))
    stored = session_store._store[session_id]["data"]
    assert stored["user"]["id"] == "user-1"


def test_login_bad_password(client, csrf_headers, session_store):
    resp = client.post(
        "/auth/login",
        json={"username": "alice", "password": "wrong"},
        headers=csrf_headers,
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}
    assert "set-cookie" not in resp.headers
    assert session_store.length() == 0


def test_login_unknown_user(client, csrf_headers):
    resp = client.post("/auth/login", json={"username": "mallory"}, headers=csrf_headers)
    assert resp.status_code == 401


def test_login_regenerates_session_id(client, test_settings, session_store):
    signer = SessionSigner(test_settings.session_secret)
    login(client, "bob")
    first = signer.unsign(client.cookies.get("sessionId"))

    login(client, "alice")
    second = signer.unsign(client.cookies.get("sessionId"))

    assert first != second
    assert first not in session_store._store
    assert session_store.length() == 1


def test_planted_session_id_is_not_reused(client, test_settings, session_store):
    """A cookie set before login never becomes the authenticated one."""
    signer = SessionSigner(test_settings.session_secret)
    client.cookies.set("sessionId", signer.sign("f" * 64))

    resp = login(client, "alice")
    assert signer.unsign(resp.cookies.get("sessionId")) != "f" * 64


def test_login_not_configured(test_settings, csrf_headers):
    override_settings(test_settings)
    app = create_app(settings=test_settings, store=MemoryStore())
    client = TestClient(app, cookies={})
    resp = client.post("/auth/login", json={"username": "alice"}, headers=csrf_headers)
    assert resp.status_code == 501
    override_settings(None)


def test_authenticator_error_is_invalid_credentials(test_settings, csrf_headers):
    async def broken(credentials):
        raise RuntimeError("directory offline")

    app = create_app(settings=test_settings, store=MemoryStore(), authenticator=broken)
    client = TestClient(app, cookies={})
    resp = client.post("/auth/login", json={"username": "alice"}, headers=csrf_headers)
    assert resp.status_code == 401


class CountingStore(MemoryStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.writes = 0

    async def set(self, session_id, data, max_age_ms=None):
        self.writes += 1
        return await super().set(session_id, data, max_age_ms)


class FailingStore(MemoryStore):
    async def set(self, session_id, data, max_age_ms=None):
        return StoreResult.failure("disk full")


def _app(test_settings, store, authenticator=fake_authenticator):
    return create_app(settings=test_settings, store=store, authenticator=authenticator)


def test_login_writes_the_session_once(test_settings):
    store = CountingStore()
    client = TestClient(_app(test_settings, store), cookies={})
    assert login(client, "alice").status_code == 200
    assert store.writes == 1


def test_login_store_failure_is_503_without_cookie(test_settings):
    client = TestClient(_app(test_settings, FailingStore()), cookies={})
    resp = login(client, "alice")
    assert resp.status_code == 503
    assert resp.json() == {"error": "Failed to save session"}
    assert "sessionId" not in resp.cookies


def test_login_strips_password_from_stored_user(test_settings, csrf_headers):
    store = MemoryStore()

    async def leaky(credentials):
        return {"id": "user-9", "email": "dan@example.com", "password": "hunter2"}

    client = TestClient(_app(test_settings, store, leaky), cookies={})
    resp = client.post("/auth/login", json={"username": "dan"}, headers=csrf_headers)
    assert resp.status_code == 200
    assert "password" not in resp.json()["user"]
    (record,) = store._store.values()
    assert record["data"]["user"] == {"id": "user-9", "email": "dan@example.com"}
