"""Shared fixtures for integration tests against a real Redis server.

All integration tests are skipped unless REDIS_URL is set. This allows the
test suite to run in CI without a Redis service while supporting local
testing against one, e.g.::

    REDIS_URL=redis://localhost:6379/15 pytest tests/integration
"""

from __future__ import annotations

import os
import secrets

import pytest
import pytest_asyncio

pytestmark = pytest.mark.integration


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Return REDIS_URL or skip."""
    url = os.environ.get("REDIS_URL", "")
    if not url:
        pytest.skip("Integration tests require REDIS_URL")
    return url


@pytest.fixture
def key_prefix() -> str:
    """A prefix unique to one test, so runs never see each other's keys."""
    return f"sessionkit-test:{secrets.token_hex(4)}:"


@pytest_asyncio.fixture
async def redis_client(redis_url):
    import redis.asyncio as aioredis

    client = aioredis.from_url(redis_url)
    yield client
    await client.aclose()
