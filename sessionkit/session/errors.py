"""Session error types."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Invalid session configuration. Raised at startup, never per request."""


class SessionStoreError(RuntimeError):
    """A session store operation failed.

    Stores never raise this themselves; they return a failed
    :class:`~sessionkit.session.backend.StoreResult`. Callers that prefer
    exceptions can call ``StoreResult.raise_for_error()``.
    """


class SessionDataError(ValueError):
    """Session data cannot be stored as given (e.g. it is too large)."""
