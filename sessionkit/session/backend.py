"""Session storage contract and record helpers."""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .errors import SessionStoreError


def now_ms() -> int:
    return int(time.time() * 1000)


def make_record(data: dict[str, Any], max_age_ms: int | None = None) -> dict[str, Any]:
    """Build the persisted record: ``{data, expiresAt, updatedAt}``."""
    now = now_ms()
    return {
        "data": data,
        "expiresAt": now + max_age_ms if max_age_ms else None,
        "updatedAt": now,
    }


def is_valid_record(record: Any) -> bool:
    """True if ``record`` has dict ``data`` and a numeric-or-null ``expiresAt``."""
    if not isinstance(record, dict) or not isinstance(record.get("data"), dict):
        return False
    expires_at = record.get("expiresAt")
    if expires_at is None:
        return True
    return isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool)


def is_expired(record: dict[str, Any], now: int | None = None) -> bool:
    expires_at = record.get("expiresAt")
    if expires_at is None:
        return False
    return (now if now is not None else now_ms()) >= expires_at


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store mutation. Truthy on success."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> StoreResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> StoreResult:
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_error(self) -> None:
        if not self.ok:
            raise SessionStoreError(self.error or "session store operation failed")


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for server-side session storage.

    Durations are milliseconds. Implementations catch and log their own I/O
    errors: ``get`` returns ``None`` and mutators return a failed
    ``StoreResult`` instead of raising.
    """

    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Load session data by ID. Returns None if not found or expired."""
        ...

    async def set(
        self, session_id: str, data: dict[str, Any], max_age_ms: int | None = None
    ) -> StoreResult:
        """Save session data. No ``max_age_ms`` means no expiry."""
        ...

    async def destroy(self, session_id: str) -> StoreResult:
        """Delete a session."""
        ...

    async def touch(self, session_id: str, max_age_ms: int) -> StoreResult:
        """Refresh a session's expiry without changing its data."""
        ...


async def store_length(store: Any) -> int | None:
    """Number of sessions in ``store``, or None if it cannot count them."""
    length = getattr(store, "length", None)
    if length is None:
        return None
    count = length()
    if inspect.isawaitable(count):
        count = await count
    return count
