"""GET /health - Liveness check."""

from fastapi import APIRouter, Request

from ..session.backend import store_length

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    store = request.app.state.session_store
    return {
        "status": "ok",
        "mode": "session",
        "store": type(store).__name__,
        "sessions": await store_length(store),
    }
