"""POST /auth/login - Establish a session after credential verification."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .. import ocsf
from ..dependencies import require_csrf
from ..session import SessionDataError, sanitize_session_data

logger = logging.getLogger(__name__)

router = APIRouter()

# Never persisted with the user, whatever the authenticator returns.
SENSITIVE_KEYS = ("password", "passwordHash", "password_hash", "secret")


class LoginRequest(BaseModel):
    """Credentials handed to the authenticator. Extra fields pass through."""

    model_config = ConfigDict(extra="allow")

    username: str | None = None
    password: str | None = None


@router.post("/auth/login")
async def login(
    body: LoginRequest,
    request: Request,
    _csrf: None = Depends(require_csrf),
):
    authenticator = request.app.state.authenticator
    if authenticator is None:
        return JSONResponse({"error": "Login is not configured"}, status_code=501)

    try:
        user = await authenticator(body.model_dump())
    except Exception as e:
        logger.error("Authenticator failed: %s", e)
        user = None

    if not user:
        ocsf.authentication_event(
            activity_id=ocsf.AuthActivity.LOGON,
            activity_name="Logon",
            status_id=ocsf.Status.FAILURE,
            severity_id=ocsf.Severity.MEDIUM,
            message="Login failed: invalid credentials",
        )
        return JSONResponse({"error": "Invalid credentials"}, status_code=401)

    try:
        user = sanitize_session_data(user, remove_keys=SENSITIVE_KEYS)
    except SessionDataError as e:
        logger.warning("Refusing to store user in session: %s", e)
        return JSONResponse({"error": "Failed to save session"}, status_code=503)

    session = request.session
    # New identifier on privilege change: a pre-login id never becomes authenticated.
    # The user rides along in the same write.
    session.data["user"] = user
    if not await session.regenerate():
        return JSONResponse({"error": "Failed to save session"}, status_code=503)

    ocsf.authentication_event(
        activity_id=ocsf.AuthActivity.LOGON,
        activity_name="Logon",
        status_id=ocsf.Status.SUCCESS,
        severity_id=ocsf.Severity.INFORMATIONAL,
        user=user,
        message="Session created via login",
    )
    return {"success": True, "user": user}
