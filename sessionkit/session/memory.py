"""In-process session store."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any

from .backend import StoreResult, is_expired, make_record, now_ms

logger = logging.getLogger(__name__)

EVICTION_STRATEGIES = ("timer", "sweep")


class MemoryStore:
    """In-memory session store for development, tests and single processes.

    Two eviction strategies reclaim expired entries:

    ``"timer"``
        one ``call_later`` handle per entry that has an expiry.
    ``"sweep"``
        a single periodic task scanning every entry; scales better with many
        concurrent sessions.

    Either way ``get`` re-checks expiry, so a read racing the eviction never
    returns a stale record. There is no locking: two concurrent ``set`` calls
    for one id are last-writer-wins.
    """

    def __init__(self, eviction: str = "timer", sweep_interval: float = 60.0) -> None:
        if eviction not in EVICTION_STRATEGIES:
            raise ValueError(f"Unknown eviction strategy: {eviction!r}")
        self._store: dict[str, dict[str, Any]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._eviction = eviction
        self._sweep_interval = sweep_interval
        self._sweeper: asyncio.Task[None] | None = None

    async def get(self, session_id: str) -> dict[str, Any] | None:
        record = self._store.get(session_id)
        if record is None:
            return None
        if is_expired(record):
            self._remove(session_id)
            return None
        return copy.deepcopy(record["data"])

    async def set(
        self, session_id: str, data: dict[str, Any], max_age_ms: int | None = None
    ) -> StoreResult:
        record = make_record(copy.deepcopy(data), max_age_ms)
        self._cancel_timer(session_id)
        self._store[session_id] = record

        if max_age_ms:
            if self._eviction == "timer":
                loop = asyncio.get_running_loop()
                self._timers[session_id] = loop.call_later(
                    max_age_ms / 1000, self._evict, session_id, record["expiresAt"]
                )
            else:
                self._ensure_sweeper()
        return StoreResult.success()

    async def destroy(self, session_id: str) -> StoreResult:
        self._remove(session_id)
        return StoreResult.success()

    async def touch(self, session_id: str, max_age_ms: int) -> StoreResult:
        record = self._store.get(session_id)
        if record is None or is_expired(record):
            return StoreResult.success()
        return await self.set(session_id, record["data"], max_age_ms)

    def length(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        return len(self._store)

    async def clear(self) -> StoreResult:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._store.clear()
        return StoreResult.success()

    async def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = now_ms()
        expired = [sid for sid, record in self._store.items() if is_expired(record, now)]
        for sid in expired:
            self._remove(sid)
        return len(expired)

    async def close(self) -> None:
        """Stop all background eviction. Stored entries are kept."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and not sweeper.get_loop().is_closed():
            sweeper.cancel()
            if sweeper.get_loop() is asyncio.get_running_loop():
                try:
                    await sweeper
                except asyncio.CancelledError:
                    pass

    def _evict(self, session_id: str, expires_at: int) -> None:
        self._timers.pop(session_id, None)
        record = self._store.get(session_id)
        if record is not None and record["expiresAt"] == expires_at:
            del self._store[session_id]

    def _remove(self, session_id: str) -> None:
        self._store.pop(session_id, None)
        self._cancel_timer(session_id)

    def _cancel_timer(self, session_id: str) -> None:
        handle = self._timers.pop(session_id, None)
        if handle is not None:
            handle.cancel()

    def _ensure_sweeper(self) -> None:
        loop = asyncio.get_running_loop()
        if self._sweeper is not None and not self._sweeper.done():
            if self._sweeper.get_loop() is loop:
                return
            # Left over from another event loop (e.g. a finished test client).
            if not self._sweeper.get_loop().is_closed():
                self._sweeper.cancel()
        self._sweeper = loop.create_task(self._sweep_forever())

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                removed = await self.sweep()
            except Exception:
                logger.exception("Session sweep failed")
                continue
            if removed:
                logger.debug("Swept %d expired sessions", removed)
