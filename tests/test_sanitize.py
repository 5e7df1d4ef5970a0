"""Tests for sanitize_session_data."""

import pytest

from sessionkit.session import SessionDataError, sanitize_session_data


@pytest.mark.parametrize("value", ["string", 123, None, 1.5, True])
def test_non_container_returned_unchanged(value):
    assert sanitize_session_data(value) == value


def test_removes_keys_at_every_level():
    data = {
        "user": {"id": 123, "password": "secret", "profile": {"name": "Ann", "apiKey": "k"}},
        "token": "jwt-token",
        "publicData": "keep-this",
    }
    assert sanitize_session_data(data, remove_keys=["password", "token", "apiKey"]) == {
        "user": {"id": 123, "profile": {"name": "Ann"}},
        "publicData": "keep-this",
    }


def test_removes_keys_inside_lists():
    data = {
        "users": [{"id": 1, "password": "a"}, {"id": 2, "password": "b"}],
        "tags": ["x", "y"],
    }
    assert sanitize_session_data(data, remove_keys={"password"}) == {
        "users": [{"id": 1}, {"id": 2}],
        "tags": ["x", "y"],
    }


def test_removed_container_leaves_parent_empty():
    data = {"credentials": {"tokens": ["t1", "t2"]}}
    assert sanitize_session_data(data, remove_keys=["tokens"]) == {"credentials": {}}


def test_returns_a_copy():
    data = {"user": {"id": 1, "password": "secret"}}
    sanitized = sanitize_session_data(data, remove_keys=["password"])
    sanitized["user"]["id"] = 2
    assert data == {"user": {"id": 1, "password": "secret"}}


def test_deep_values_are_replaced():
    data = {"a": {"b": {"c": {"d": 1}}}}
    assert sanitize_session_data(data, max_depth=2) == {"a": {"b": "[Max Depth Exceeded]"}}


def test_default_depth_keeps_ordinary_nesting():
    data = {"user": {"profile": {"preferences": {"theme": "dark"}}}}
    assert sanitize_session_data(data) == data


def test_oversized_data_is_rejected():
    with pytest.raises(SessionDataError, match="Session data too large"):
        sanitize_session_data({"big": "x" * 2048}, max_size=1024)


def test_size_counts_encoded_bytes():
    # 400 characters, but each is escaped to six bytes of JSON.
    with pytest.raises(SessionDataError):
        sanitize_session_data({"s": "€" * 400}, max_size=1024)


def test_session_data_error_is_a_value_error():
    assert issubclass(SessionDataError, ValueError)
