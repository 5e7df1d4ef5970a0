"""Users, a fake authenticator and a login helper shared by the test modules."""

from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

USERS: dict[str, dict[str, Any]] = {
    "alice": {
        "password": "alice-password",
        "user": {"id": "user-1", "email": "alice@example.com", "role": "admin"},
    },
    "bob": {
        "password": "bob-password",
        "user": {"id": "user-2", "email": "bob@example.com", "role": "viewer"},
    },
    "carol": {
        "password": "carol-password",
        "user": {"id": "user-3", "email": "carol@example.com"},
    },
}


async def fake_authenticator(credentials: dict[str, Any]) -> dict[str, Any] | None:
    """Stand-in credential check backed by the USERS table."""
    entry = USERS.get(credentials.get("username", ""))
    if entry is None or entry["password"] != credentials.get("password"):
        return None
    return dict(entry["user"])


def login(client: TestClient, username: str = "alice") -> Any:
    return client.post(
        "/auth/login",
        json={"username": username, "password": USERS[username]["password"]},
        headers={"X-Session-CSRF": "1"},
    )
