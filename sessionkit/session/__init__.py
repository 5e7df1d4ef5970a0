from .backend import SessionStore, StoreResult
from .cookies import (
    CookieAdapter,
    CookieOptions,
    HeaderCookieAdapter,
    SessionCookies,
    StarletteCookieAdapter,
    select_cookie_adapter,
)
from .errors import ConfigurationError, SessionDataError, SessionStoreError
from .filesystem import FileStore
from .memory import MemoryStore
from .middleware import SessionMiddleware
from .redis import RedisSessionStore
from .sanitize import sanitize_session_data
from .session import Session
from .signing import SessionSigner, create_session_secret, resolve_secret, validate_session_config

__all__ = [
    "ConfigurationError",
    "CookieAdapter",
    "CookieOptions",
    "FileStore",
    "HeaderCookieAdapter",
    "MemoryStore",
    "RedisSessionStore",
    "Session",
    "SessionCookies",
    "SessionDataError",
    "SessionMiddleware",
    "SessionSigner",
    "SessionStore",
    "SessionStoreError",
    "StarletteCookieAdapter",
    "StoreResult",
    "create_session_secret",
    "resolve_secret",
    "sanitize_session_data",
    "select_cookie_adapter",
    "validate_session_config",
]
