"""Shared fixtures for the session toolkit test suite."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from helpers import fake_authenticator, login
from sessionkit.config import Settings, override_settings
from sessionkit.main import create_app
from sessionkit.session import MemoryStore


# ── Test Settings ─────────────────────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        session_secret="test-secret-key-for-sessions",
        environment="test",
    )


# ── App & Client ──────────────────────────────────────────────────────────

@pytest.fixture
def session_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def app(test_settings, session_store):
    override_settings(test_settings)
    yield create_app(settings=test_settings, store=session_store, authenticator=fake_authenticator)
    override_settings(None)


@pytest.fixture
def client(app) -> TestClient:
    """TestClient with cookie persistence."""
    return TestClient(app, cookies={})


@pytest.fixture
def csrf_headers() -> dict[str, str]:
    """Standard CSRF headers for POST requests."""
    return {"X-Session-CSRF": "1"}


@pytest.fixture
def json_headers() -> dict[str, str]:
    """Marks a request as an API request, so auth failures are 401 not 302."""
    return {"Accept": "application/json"}


# ── Helper: Authenticated Client ──────────────────────────────────────────

@pytest.fixture
def auth_session(client):
    """Log in as the admin user and return the client."""
    resp = login(client, "alice")
    assert resp.status_code == 200
    return client


@pytest.fixture
def viewer_session(client):
    """Log in as a user without the admin role."""
    resp = login(client, "bob")
    assert resp.status_code == 200
    return client
