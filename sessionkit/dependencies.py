"""FastAPI dependency injection: session access, CSRF, authentication, roles."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any

from fastapi import HTTPException, Request, status

from . import ocsf
from .config import Settings, get_settings
from .session import Session

logger = logging.getLogger(__name__)


def get_session(request: Request) -> Session:
    """Get the session object from the request scope."""
    return request.session


def _settings(request: Request) -> Settings:
    """Settings of the app serving ``request``, else the process-wide ones."""
    state = getattr(request.scope.get("app"), "state", None)
    return getattr(state, "settings", None) or get_settings()


def require_csrf(request: Request) -> None:
    """Require X-Session-CSRF: 1 header on state-changing requests."""
    if request.headers.get("x-session-csrf") != "1":
        raise HTTPException(
            status_code=403,
            detail={
                "error": "CSRF validation failed",
                "message": "Missing X-Session-CSRF header",
            },
        )


def is_api_request(request: Request, api_prefix: str | None = None) -> bool:
    """Decide whether a request wants a structured error instead of a redirect.

    The path prefix is checked first: anything under it is an API request
    regardless of ``Accept``. Otherwise an ``Accept`` header naming
    ``application/json`` makes it one.
    """
    prefix = api_prefix if api_prefix is not None else _settings(request).api_prefix
    if prefix and request.url.path.startswith(prefix):
        return True
    return "application/json" in request.headers.get("accept", "").lower()


class RequireAuthentication:
    """Dependency requiring an active session that carries a user.

    On success the user is attached as ``request.user`` and returned. API
    clients get a 401 payload; browsers are redirected to the login page.
    Unset options fall back to the application settings at request time.

    ``on_auth_required(request, reason)`` replaces the default denial. It may
    be sync or async and may raise its own ``HTTPException``; a truthy return
    value is accepted as the user (a guest, say), while ``None`` falls
    through to the default 401 or redirect. ``reason`` is ``"No active
    session"`` or ``"No user in session"``.
    """

    def __init__(
        self,
        *,
        login_url: str | None = None,
        user_key: str | None = None,
        get_user: Callable[[dict[str, Any]], Any] | None = None,
        api_prefix: str | None = None,
        on_auth_required: Callable[[Request, str], Any] | None = None,
    ) -> None:
        self.login_url = login_url
        self.user_key = user_key
        self.get_user = get_user
        self.api_prefix = api_prefix
        self.on_auth_required = on_auth_required

    def _extract_user(self, request: Request, data: dict[str, Any]) -> Any:
        if self.get_user is not None:
            return self.get_user(data)
        return data.get(self.user_key or _settings(request).user_key)

    async def __call__(self, request: Request) -> Any:
        session = request.scope.get("session")
        user = None
        if session is None or not session.is_active():
            reason = "No active session"
        else:
            reason = "No user in session"
            try:
                user = self._extract_user(request, session.data)
            except Exception:
                logger.debug("User extraction failed", exc_info=True)
                user = None

        if not user:
            user = await self._auth_required(request, reason)

        request.scope["user"] = user
        return user

    async def _auth_required(self, request: Request, reason: str) -> Any:
        if self.on_auth_required is not None:
            user = self.on_auth_required(request, reason)
            if inspect.isawaitable(user):
                user = await user
            if user:
                return user
        self._deny(request)

    def _deny(self, request: Request) -> None:
        login_url = self.login_url or _settings(request).login_url
        ocsf.authentication_event(
            activity_id=ocsf.AuthActivity.OTHER,
            activity_name="Other",
            status_id=ocsf.Status.FAILURE,
            severity_id=ocsf.Severity.LOW,
            message=f"Authentication required for {request.url.path}",
        )
        if is_api_request(request, self.api_prefix):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={
                    "error": "Authentication required",
                    "message": "Please log in to access this resource",
                    "login_url": login_url,
                },
            )
        raise HTTPException(
            status_code=status.HTTP_302_FOUND,
            headers={"Location": login_url},
        )


class RequireRole:
    """Dependency granting access when the user holds any of ``roles``.

    Must run after :class:`RequireAuthentication`. Failures are always a 403
    payload, never a redirect.
    """

    def __init__(
        self,
        roles: str | Iterable[str],
        *,
        role_key: str | None = None,
        get_roles: Callable[[Any], Any] | None = None,
    ) -> None:
        self.roles = [roles] if isinstance(roles, str) else list(roles)
        self.role_key = role_key
        self.get_roles = get_roles

    def _extract_roles(self, request: Request, user: Any) -> list[str]:
        role_key = self.role_key or _settings(request).role_key
        if self.get_roles is not None:
            found = self.get_roles(user)
        elif isinstance(user, dict):
            found = user.get(role_key)
        else:
            found = getattr(user, role_key, None)
        if found is None:
            return []
        if isinstance(found, str):
            return [found]
        return [role for role in found if role]

    async def __call__(self, request: Request) -> Any:
        user = request.scope.get("user")
        if user is None:
            self._forbid(request, None, "Authentication required before authorization")

        try:
            user_roles = self._extract_roles(request, user)
        except Exception:
            logger.debug("Role extraction failed", exc_info=True)
            user_roles = []
        if not user_roles:
            self._forbid(request, user, "No roles found for user")
        if not set(user_roles) & set(self.roles):
            self._forbid(request, user, "Insufficient permissions")

        ocsf.authorization_event(
            path=request.url.path,
            required_roles=self.roles,
            decision="permit",
            severity_id=ocsf.Severity.INFORMATIONAL,
            user=user,
        )
        return user

    def _forbid(self, request: Request, user: Any, reason: str) -> None:
        ocsf.authorization_event(
            path=request.url.path,
            required_roles=self.roles,
            decision="deny",
            reason=reason,
            severity_id=ocsf.Severity.MEDIUM,
            user=user,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Access forbidden",
                "message": reason,
                "required_roles": self.roles,
            },
        )


require_auth = RequireAuthentication()


def require_role(*roles: str, **options: Any) -> RequireRole:
    """Shorthand: ``Depends(require_role("admin", "editor"))``."""
    return RequireRole(roles, **options)


async def destroy_session(request: Request) -> None:
    """Destroy the current session, if any."""
    await request.session.destroy()
