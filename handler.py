"""ASGI entry point for running the reference app under a server.

The app is created at module level from environment settings so the store
and its background eviction live as long as the server process::

    SESSION_SECRET=... uvicorn handler:app --port 3001

Environment variables (required in production):
    SESSION_SECRET

Environment variables (recommended for multi-process deployments):
    SESSION_STORE=redis
    REDIS_URL=redis://localhost:6379/0
    ENVIRONMENT=production
"""

from sessionkit.main import create_app

app = create_app()
