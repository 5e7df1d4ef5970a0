"""GET /admin/sessions - Session store statistics (admin only)."""

from fastapi import APIRouter, Depends, Request

from ..dependencies import require_auth, require_role
from ..session.backend import store_length

router = APIRouter()


@router.get(
    "/admin/sessions",
    dependencies=[Depends(require_auth), Depends(require_role("admin"))],
)
async def session_stats(request: Request):
    store = request.app.state.session_store
    return {"store": type(store).__name__, "sessions": await store_length(store)}
