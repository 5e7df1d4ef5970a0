"""Request-scoped session object."""

from __future__ import annotations

import logging
from typing import Any

from .backend import SessionStore, StoreResult, now_ms
from .cookies import SessionCookies
from .signing import SessionSigner

logger = logging.getLogger(__name__)

CREATED_AT = "_createdAt"
UPDATED_AT = "_updatedAt"


class Session:
    """The session seen by request handlers as ``request.session``.

    A session only comes into existence on the first ``save``: that is when
    the identifier is minted and the cookie issued. Mutations persist
    immediately; the cookie change is queued and written onto the response
    headers by the middleware. Only the latest cookie change is sent.

    An *ephemeral* session is handed out when the store or cookie handling
    failed during resolution. It behaves like an empty, inactive session whose
    data lives only for the current request.
    """

    def __init__(
        self,
        *,
        store: SessionStore | None,
        signer: SessionSigner | None,
        cookies: SessionCookies | None,
        max_age_ms: int | None,
        session_id: str | None = None,
        data: dict[str, Any] | None = None,
        had_cookie: bool = False,
        ephemeral: bool = False,
    ) -> None:
        self._store = store
        self._signer = signer
        self._cookies = cookies
        self._max_age_ms = max_age_ms
        self._id = session_id
        self.data: dict[str, Any] = data if data is not None else {}
        self._had_cookie = had_cookie
        self._ephemeral = ephemeral or store is None or signer is None
        self._is_new = False
        # ("set", signed value) or ("clear", None)
        self.pending_cookie: tuple[str, str | None] | None = None

    @classmethod
    def ephemeral(cls) -> Session:
        return cls(store=None, signer=None, cookies=None, max_age_ms=None, ephemeral=True)

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def is_new(self) -> bool:
        """True if the identifier was minted during this request."""
        return self._is_new

    @property
    def is_ephemeral(self) -> bool:
        return self._ephemeral

    def is_active(self) -> bool:
        return self._id is not None

    def get_age(self) -> int | None:
        """Milliseconds since the session was created, or None."""
        if self._id is None:
            return None
        created_at = self.data.get(CREATED_AT)
        if created_at is None:
            return None
        return now_ms() - int(created_at)

    def _issue_cookie(self) -> None:
        self.pending_cookie = ("set", self._signer.sign(self._id))

    def _clear_cookie(self) -> None:
        self.pending_cookie = ("clear", None)

    def _stamp(self, data: dict[str, Any]) -> dict[str, Any]:
        now = now_ms()
        data.setdefault(CREATED_AT, now)
        data[UPDATED_AT] = now
        return data

    async def save(self, data: dict[str, Any] | None = None) -> bool:
        """Merge ``data`` into the session and persist it.

        Creates the session (identifier and cookie) when there is none yet.
        Returns False if the store could not persist; the merged data stays
        available for the rest of the request either way.
        """
        self.data = self._stamp({**self.data, **(data or {})})
        if self._ephemeral:
            return False

        minted = self._id is None
        if minted:
            self._id = self._signer.generate_id()

        result = await self._persist(self._id, self.data)
        if not result:
            if minted:
                self._id = None
            logger.warning("Session save failed: %s", result.error)
            return False

        if minted:
            self._is_new = True
            self._issue_cookie()
        return True

    async def destroy(self) -> bool:
        """Remove the stored record, clear the cookie and reset the session."""
        ok = True
        if self._id is not None and not self._ephemeral:
            result = await self._call_store("destroy", self._id)
            if not result:
                logger.warning("Session destroy failed: %s", result.error)
                ok = False
        if (self._id is not None or self._had_cookie) and not self._ephemeral:
            self._clear_cookie()
        self._id = None
        self._is_new = False
        self.data = {}
        return ok

    async def regenerate(self) -> bool:
        """Move the session's data to a fresh identifier.

        Call after login or any privilege change, so an identifier planted
        before authentication never becomes an authenticated one.
        """
        if self._ephemeral:
            return False
        captured = self._stamp(dict(self.data))

        if self._id is not None:
            result = await self._call_store("destroy", self._id)
            if not result:
                logger.warning("Failed to remove old session during regenerate: %s", result.error)
        had_session = self._id is not None or self._had_cookie

        self._id = self._signer.generate_id()
        result = await self._persist(self._id, captured)
        if not result:
            logger.warning("Session regenerate failed: %s", result.error)
            self._id = None
            self._is_new = False
            if had_session:
                self._clear_cookie()
            return False

        self.data = captured
        self._is_new = True
        self._issue_cookie()
        return True

    async def touch(self) -> bool:
        """Extend the session's expiry without changing its data."""
        if self._id is None or self._ephemeral:
            return False
        result = await self._call_store("touch", self._id, self._max_age_ms)
        if not result:
            logger.warning("Session touch failed: %s", result.error)
            return False
        self._issue_cookie()
        return True

    async def _persist(self, session_id: str, data: dict[str, Any]) -> StoreResult:
        return await self._call_store("set", session_id, data, self._max_age_ms)

    async def _call_store(self, method: str, *args: Any) -> StoreResult:
        """Run a store mutation, turning unexpected exceptions into failures."""
        try:
            result = await getattr(self._store, method)(*args)
        except Exception as e:
            logger.exception("Session store %s raised", method)
            return StoreResult.failure(str(e) or type(e).__name__)
        if isinstance(result, StoreResult):
            return result
        return StoreResult.success()

    def apply_cookie(self, response: Any) -> None:
        """Write the queued cookie change onto ``response`` and clear the queue."""
        pending, self.pending_cookie = self.pending_cookie, None
        if pending is None or self._cookies is None:
            return
        action, value = pending
        if action == "set":
            self._cookies.set_cookie(response, value)
        else:
            self._cookies.clear_cookie(response)

    def __repr__(self) -> str:
        state = "active" if self.is_active() else "inactive"
        return f"<Session {state}>"
