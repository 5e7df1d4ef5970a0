"""OCSF (Open Cybersecurity Schema Framework) security event logging.

Session and access-control outcomes (login, logout, authentication required,
forbidden) are logged to the ``ocsf`` logger as JSON. Consumers attach their
own handlers (JSON formatter, log shipper, structlog, etc.).

Usage in route handlers::

    from . import ocsf
    ocsf.authentication_event(
        activity_id=ocsf.AuthActivity.LOGOFF,
        activity_name="Logoff",
        status_id=ocsf.Status.SUCCESS,
        severity_id=ocsf.Severity.INFORMATIONAL,
        user=request.session.data.get("user"),
        message="User logged out",
    )
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

logger = logging.getLogger("ocsf")

# ── OCSF Constants ─────────────────────────────────────────────────────────


class EventClass:
    AUTHENTICATION = 3001


class AuthActivity:
    LOGON = 1
    LOGOFF = 2
    OTHER = 99  # Authorization decisions, denied access


class Status:
    SUCCESS = 1
    FAILURE = 2


class Severity:
    INFORMATIONAL = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    CRITICAL = 5


_SEVERITY_NAMES = {
    Severity.INFORMATIONAL: "Informational",
    Severity.LOW: "Low",
    Severity.MEDIUM: "Medium",
    Severity.HIGH: "High",
    Severity.CRITICAL: "Critical",
}

_PRODUCT = {
    "name": "sessionkit",
    "version": "0.1.0",
    "vendor_name": "sessionkit",
}


# ── Core emit ──────────────────────────────────────────────────────────────


def emit(event: dict[str, Any]) -> None:
    """Log an OCSF event as JSON. Never raises: logging must not break a request."""
    try:
        logger.info(json.dumps(event, default=str))
    except Exception:
        logging.getLogger(__name__).debug("Dropped OCSF event", exc_info=True)


def _actor(user: Any) -> dict[str, Any] | None:
    label = user_label(user)
    if label is None:
        return None
    return {"user": {"name": label, "type_id": 1, "type": "User"}}


# ── Event builders ─────────────────────────────────────────────────────────


def authentication_event(
    *,
    activity_id: int,
    activity_name: str,
    status_id: int,
    severity_id: int,
    user: Any = None,
    message: str = "",
    extra_metadata: dict[str, Any] | None = None,
) -> None:
    """Emit an OCSF Authentication (3001) event."""
    event: dict[str, Any] = {
        "class_uid": EventClass.AUTHENTICATION,
        "class_name": "Authentication",
        "activity_id": activity_id,
        "activity_name": activity_name,
        "severity_id": severity_id,
        "severity": _SEVERITY_NAMES.get(severity_id, "Unknown"),
        "status_id": status_id,
        "status": "Success" if status_id == Status.SUCCESS else "Failure",
        "time": int(time.time() * 1000),
        "metadata": {
            "product": _PRODUCT,
            **(extra_metadata or {}),
        },
        "auth_protocol": "Session",
        "message": message,
    }
    actor = _actor(user)
    if actor:
        event["actor"] = actor
    emit(event)


def authorization_event(
    *,
    path: str,
    required_roles: list[str],
    decision: str,
    reason: str = "",
    severity_id: int,
    user: Any = None,
) -> None:
    """Emit an authorization decision (class 3001, activity 99/Other)."""
    permitted = decision == "permit"
    event: dict[str, Any] = {
        "class_uid": EventClass.AUTHENTICATION,
        "class_name": "Authentication",
        "activity_id": AuthActivity.OTHER,
        "activity_name": "Other",
        "severity_id": severity_id,
        "severity": _SEVERITY_NAMES.get(severity_id, "Unknown"),
        "status_id": Status.SUCCESS if permitted else Status.FAILURE,
        "status": "Success" if permitted else "Failure",
        "time": int(time.time() * 1000),
        "metadata": {
            "product": _PRODUCT,
            "authorization": {
                "path": path,
                "required_roles": required_roles,
                "decision": decision,
                "reason": reason,
            },
        },
        "message": f"Role authorization: {decision} for {path}",
    }
    actor = _actor(user)
    if actor:
        event["actor"] = actor
    emit(event)


def user_label(user: Any) -> str | None:
    """Best-effort display name for a session user (email, username or id)."""
    if user is None:
        return None
    if isinstance(user, dict):
        for key in ("email", "username", "name", "id"):
            if user.get(key) is not None:
                return str(user[key])
        return None
    return str(user)
