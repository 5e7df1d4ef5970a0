"""Redis-backed session store."""

from __future__ import annotations

import inspect
import json
import logging
import math
from typing import Any

from .backend import StoreResult, is_expired, is_valid_record, now_ms

logger = logging.getLogger(__name__)

_KEY_PREFIX = "sess:"

# How the client writes several hash fields at once.
HSET_MAPPING = "hset"  # hset(name, mapping=...): redis-py >= 3.5, redis.asyncio
HMSET = "hmset"  # hmset(name, mapping): redis-py 2.x/3.x ``Redis``

# How the client enumerates keys.
SCAN_ITER = "scan_iter"
KEYS = "keys"


async def _resolve(value: Any) -> Any:
    """Await coroutine results so sync and async clients share one code path."""
    if inspect.isawaitable(value):
        return await value
    return value


def detect_hash_style(client: Any) -> str:
    hset = getattr(client, "hset", None)
    if callable(hset):
        try:
            if "mapping" in inspect.signature(hset).parameters:
                return HSET_MAPPING
        except (TypeError, ValueError):
            return HSET_MAPPING
    if callable(getattr(client, "hmset", None)):
        return HMSET
    return HSET_MAPPING


def detect_scan_style(client: Any) -> str:
    return SCAN_ITER if callable(getattr(client, "scan_iter", None)) else KEYS


def ttl_seconds(max_age_ms: int) -> int:
    """Milliseconds to whole seconds, rounded up (Redis TTLs are in seconds)."""
    return math.ceil(max_age_ms / 1000)


def _text(value: Any) -> Any:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisSessionStore:
    """Session store on a Redis client.

    Each record is a hash under ``prefix + id`` with the fields ``data``
    (JSON), ``expiresAt`` and ``updatedAt`` (ms epoch, empty for no expiry).
    Native TTLs do the eviction; because they are rounded up to whole seconds,
    ``get`` also checks ``expiresAt`` itself. ``touch`` rewrites only the
    expiry fields and the TTL, so it never races a concurrent ``set`` on
    ``data``.

    The caller owns the client unless ``owns_client`` is set, in which case
    ``close`` closes it. The client's call shape is detected once here rather
    than on every call.
    """

    def __init__(
        self, client: Any, *, prefix: str = _KEY_PREFIX, owns_client: bool = False
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._owns_client = owns_client
        self.hash_style = detect_hash_style(client)
        self.scan_style = detect_scan_style(client)

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def _commands(
        self, key: str, fields: dict[str, str], ttl: int | None
    ) -> list[tuple[str, tuple, dict]]:
        if self.hash_style == HSET_MAPPING:
            commands = [("hset", (key,), {"mapping": fields})]
        else:
            commands = [("hmset", (key, fields), {})]
        if ttl is not None:
            commands.append(("expire", (key, ttl), {}))
        elif callable(getattr(self._client, "persist", None)):
            commands.append(("persist", (key,), {}))
        return commands

    async def _execute(self, commands: list[tuple[str, tuple, dict]]) -> None:
        """Run ``commands`` in one MULTI/EXEC when the client has pipelines."""
        factory = getattr(self._client, "pipeline", None)
        if not callable(factory):
            for name, args, kwargs in commands:
                await _resolve(getattr(self._client, name)(*args, **kwargs))
            return
        pipe = factory(transaction=True)
        for name, args, kwargs in commands:
            getattr(pipe, name)(*args, **kwargs)
        await _resolve(pipe.execute())

    async def get(self, session_id: str) -> dict[str, Any] | None:
        key = self._key(session_id)
        try:
            raw = await _resolve(self._client.hgetall(key))
        except Exception as e:
            logger.warning("Redis session get error: %s", e)
            return None
        if not raw:
            return None
        fields = {_text(k): _text(v) for k, v in raw.items()}
        if "data" not in fields:
            # Only expiry fields: a touch raced a destroy. The TTL removes it.
            return None
        try:
            expires_at = fields.get("expiresAt") or None
            record = {
                "data": json.loads(fields["data"]),
                "expiresAt": int(expires_at) if expires_at is not None else None,
            }
        except (TypeError, ValueError):
            logger.warning("Failed to deserialize session '%s'", session_id)
            return None
        if not is_valid_record(record):
            logger.warning("Ignoring malformed session record '%s'", session_id)
            return None
        if is_expired(record):
            await self.destroy(session_id)
            return None
        return record["data"]

    async def set(
        self, session_id: str, data: dict[str, Any], max_age_ms: int | None = None
    ) -> StoreResult:
        now = now_ms()
        ttl = ttl_seconds(max_age_ms) if max_age_ms else None
        try:
            fields = {
                "data": json.dumps(data),
                "expiresAt": str(now + max_age_ms) if max_age_ms else "",
                "updatedAt": str(now),
            }
            await self._execute(self._commands(self._key(session_id), fields, ttl))
        except Exception as e:
            logger.warning("Redis session set error: %s", e)
            return StoreResult.failure("failed to save session")
        return StoreResult.success()

    async def destroy(self, session_id: str) -> StoreResult:
        try:
            await _resolve(self._client.delete(self._key(session_id)))
        except Exception as e:
            logger.warning("Redis session destroy error: %s", e)
            return StoreResult.failure("failed to destroy session")
        return StoreResult.success()

    async def touch(self, session_id: str, max_age_ms: int) -> StoreResult:
        """Re-apply the TTL and move ``expiresAt`` forward. ``data`` is never written."""
        if not max_age_ms:
            return StoreResult.success()
        key = self._key(session_id)
        now = now_ms()
        fields = {"expiresAt": str(now + max_age_ms), "updatedAt": str(now)}
        try:
            if not await _resolve(self._client.exists(key)):
                return StoreResult.success()
            await self._execute(self._commands(key, fields, ttl_seconds(max_age_ms)))
        except Exception as e:
            logger.warning("Redis session touch error: %s", e)
            return StoreResult.failure("failed to touch session")
        return StoreResult.success()

    async def _scan(self) -> list[Any]:
        pattern = f"{self._prefix}*"
        if self.scan_style == SCAN_ITER:
            keys = []
            found = self._client.scan_iter(match=pattern)
            if hasattr(found, "__aiter__"):
                async for key in found:
                    keys.append(key)
            else:
                keys.extend(found)
            return keys
        return list(await _resolve(self._client.keys(pattern)))

    async def length(self) -> int:
        try:
            return len(await self._scan())
        except Exception as e:
            logger.warning("Redis session count error: %s", e)
            return 0

    async def clear(self) -> StoreResult:
        """Delete every key under the prefix. Not atomic with concurrent writers."""
        try:
            keys = await self._scan()
            if keys:
                await _resolve(self._client.delete(*keys))
        except Exception as e:
            logger.warning("Redis session clear error: %s", e)
            return StoreResult.failure("failed to clear sessions")
        return StoreResult.success()

    async def ping(self) -> bool:
        try:
            result = await _resolve(self._client.ping())
        except Exception as e:
            logger.warning("Redis ping error: %s", e)
            return False
        return result is True or result in ("PONG", b"PONG")

    async def close(self) -> None:
        """Close the client if this store owns it."""
        if not self._owns_client:
            return
        close = getattr(self._client, "aclose", None) or getattr(self._client, "close", None)
        if close is None:
            return
        try:
            await _resolve(close())
        except Exception as e:
            logger.warning("Redis client close error: %s", e)
