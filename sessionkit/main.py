"""Reference FastAPI application for the session toolkit.

Wires the session middleware, the configured store and the auth routes
together from settings. Credential checking is not part of the toolkit: pass
an ``authenticator`` to enable ``POST /auth/login``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from .config import Settings, get_settings
from .routes import admin, health, login, logout, me, session_ep
from .session import (
    FileStore,
    MemoryStore,
    RedisSessionStore,
    SessionMiddleware,
    SessionStore,
    resolve_secret,
)

logger = logging.getLogger(__name__)


def build_store(s: Settings) -> SessionStore:
    """Create the session store selected by ``session_store``."""
    if s.session_store == "redis":
        import redis.asyncio as aioredis

        client = aioredis.from_url(s.redis_url)
        return RedisSessionStore(client, prefix=s.redis_prefix, owns_client=True)
    if s.session_store == "file":
        return FileStore(s.session_dir, cleanup_interval=s.session_cleanup_interval)
    if s.session_store != "memory":
        logger.warning("Unknown session store %r, falling back to memory", s.session_store)
    return MemoryStore(eviction=s.session_eviction, sweep_interval=s.session_sweep_interval)


def create_app(
    *,
    settings: Settings | None = None,
    store: SessionStore | None = None,
    authenticator: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (default: ``get_settings()``).
        store: Custom session store (default: chosen from settings).
        authenticator: ``async (credentials: dict) -> user | None`` used by
            ``POST /auth/login``.
    """
    s = settings or get_settings()
    # Fails here, at startup, when production has no secret.
    secret = resolve_secret(s.session_secret, s.environment)
    session_store = store or build_store(s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Sessions: %s store", type(session_store).__name__)
        yield
        close = getattr(session_store, "close", None)
        if close is not None:
            await close()

    app = FastAPI(title="sessionkit", lifespan=lifespan)
    app.state.settings = s
    app.state.session_store = session_store
    app.state.authenticator = authenticator

    # Server-side sessions
    app.add_middleware(
        SessionMiddleware,
        secret=secret,
        store=session_store,
        cookie_name=s.session_cookie_name,
        max_age_ms=s.session_max_age_ms,
        secure=s.cookie_secure,
        http_only=s.session_http_only,
        same_site=s.session_same_site,
        path=s.session_path,
        domain=s.session_domain,
        rolling=s.session_rolling,
        environment=s.environment,
    )

    # Routes
    app.include_router(login.router)
    app.include_router(session_ep.router)
    app.include_router(logout.router)
    app.include_router(me.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app
