"""GET /auth/me - Return the user stored in the session."""

from typing import Any

from fastapi import APIRouter, Depends

from ..dependencies import require_auth

router = APIRouter()


@router.get("/auth/me")
async def get_me(user: Any = Depends(require_auth)):
    return {"user": user}
