"""POST /auth/logout - Destroy session."""

from fastapi import APIRouter, Depends, Request

from .. import ocsf
from ..dependencies import destroy_session, require_csrf

router = APIRouter()


@router.post("/auth/logout")
async def logout(
    request: Request,
    _csrf: None = Depends(require_csrf),
):
    user = request.session.data.get("user")
    await destroy_session(request)
    ocsf.authentication_event(
        activity_id=ocsf.AuthActivity.LOGOFF,
        activity_name="Logoff",
        status_id=ocsf.Status.SUCCESS,
        severity_id=ocsf.Severity.INFORMATIONAL,
        user=user,
        message="User logged out",
    )
    return {"success": True}
