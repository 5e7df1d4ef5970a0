"""GET /auth/session, POST /auth/session/touch - Session status and keep-alive."""

from fastapi import APIRouter, Depends

from ..dependencies import get_session, require_csrf
from ..session import Session

router = APIRouter()


@router.get("/auth/session")
async def session_status(session: Session = Depends(get_session)):
    return {
        "active": session.is_active(),
        "age_ms": session.get_age(),
    }


@router.post("/auth/session/touch")
async def touch_session(
    session: Session = Depends(get_session),
    _csrf: None = Depends(require_csrf),
):
    return {"success": await session.touch()}
