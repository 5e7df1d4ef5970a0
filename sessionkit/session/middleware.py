"""ASGI server-side session middleware.

Starlette's built-in SessionMiddleware keeps all data in the signed cookie.
This middleware keeps only a signed session ID in the cookie and delegates
data storage to a SessionStore. The session object is exposed to handlers as
``request.session`` whether or not a session exists yet.
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .backend import SessionStore
from .cookies import CookieAdapter, CookieOptions, SessionCookies, select_cookie_adapter
from .errors import ConfigurationError
from .memory import MemoryStore
from .session import Session
from .signing import SessionSigner, resolve_secret

logger = logging.getLogger(__name__)

COOKIE_NAME = "sessionId"
MAX_AGE_MS = 24 * 60 * 60 * 1000  # 24 hours


class SessionMiddleware:
    """ASGI middleware for server-side sessions.

    Resolves the session once per request: read the cookie, verify its
    signature, load the record. Any failure along the way is logged and the
    handler gets an empty, inactive session instead; nothing raised by the
    cookie handling or the store reaches the application.
    """

    def __init__(
        self,
        app: ASGIApp,
        secret: str | None = None,
        store: SessionStore | None = None,
        *,
        cookie_name: str = COOKIE_NAME,
        max_age_ms: int = MAX_AGE_MS,
        secure: bool | None = None,
        http_only: bool = True,
        same_site: str = "strict",
        path: str = "/",
        domain: str | None = None,
        rolling: bool = True,
        environment: str = "development",
        cookie_adapter: CookieAdapter | None = None,
    ) -> None:
        self.app = app
        self.signer = SessionSigner(resolve_secret(secret, environment))
        self.store = store or MemoryStore()
        self.max_age_ms = max_age_ms
        self.rolling = rolling
        if secure is None:
            secure = environment.lower() == "production"
        self.cookies = SessionCookies(
            cookie_name,
            CookieOptions(
                max_age=max_age_ms // 1000,
                path=path,
                domain=domain,
                secure=secure,
                http_only=http_only,
                same_site=same_site,
            ),
            # Cookies are written onto the raw response-start headers.
            cookie_adapter or select_cookie_adapter(MutableHeaders),
        )
        if cookie_adapter is not None:
            self._check_adapter()

    def _check_adapter(self) -> None:
        """Fail at startup if the adapter cannot write response-start headers."""
        try:
            self.cookies.set_cookie(MutableHeaders(), "")
            self.cookies.clear_cookie(MutableHeaders())
        except Exception as e:
            raise ConfigurationError(
                f"cookie adapter {type(self.cookies.adapter).__name__} cannot write "
                "ASGI response headers"
            ) from e

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        session = await self._resolve(HTTPConnection(scope))
        scope["session"] = session

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                try:
                    session.apply_cookie(MutableHeaders(scope=message))
                except Exception:
                    logger.exception("Failed to write session cookie")
            elif message["type"] == "http.response.body" and session.pending_cookie:
                logger.warning("Session cookie changed after the response started; dropped")
                session.pending_cookie = None
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _new_session(self, **kwargs: Any) -> Session:
        return Session(
            store=self.store,
            signer=self.signer,
            cookies=self.cookies,
            max_age_ms=self.max_age_ms,
            **kwargs,
        )

    async def _resolve(self, conn: HTTPConnection) -> Session:
        try:
            signed = self.cookies.get_cookie(conn)
            if not signed:
                return self._new_session()

            session_id = self.signer.unsign(signed)
            if session_id is None:
                return self._new_session(had_cookie=True)

            data = await self.store.get(session_id)
            if data is None:
                return self._new_session(had_cookie=True)

            session = self._new_session(session_id=session_id, data=data, had_cookie=True)
            if self.rolling:
                await session.touch()
            return session
        except Exception:
            logger.exception("Session resolution failed; continuing without a session")
            return Session.ephemeral()
