"""Filesystem session store: one JSON file per session."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import secrets
from pathlib import Path
from typing import Any

from .backend import StoreResult, is_expired, is_valid_record, make_record, now_ms

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")

SAVE_FAILED = "failed to save session"


class FileStore:
    """Session store writing ``<directory>/<id><extension>`` JSON files.

    The directory is created lazily on first use. A background sweep every
    ``cleanup_interval`` seconds deletes expired files, and ``get`` re-checks
    expiry in between. Writes replace the file atomically, but there is no
    locking across writers: concurrent saves are last-writer-wins.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str] = "./sessions",
        *,
        extension: str = ".json",
        cleanup_interval: float = 60.0,
        encoding: str = "utf-8",
    ) -> None:
        self.directory = Path(directory)
        self.extension = extension
        self.cleanup_interval = cleanup_interval
        self.encoding = encoding
        self._initialized = False
        self._sweeper: asyncio.Task[None] | None = None

    def _path(self, session_id: str) -> Path | None:
        sanitized = _UNSAFE_CHARS.sub("", session_id)
        if not sanitized:
            return None
        return self.directory / f"{sanitized}{self.extension}"

    async def _ensure_started(self) -> None:
        if not self._initialized:
            await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
            self._initialized = True
        self._ensure_sweeper()

    async def get(self, session_id: str) -> dict[str, Any] | None:
        path = self._path(session_id)
        if path is None:
            return None
        try:
            await self._ensure_started()
            raw = await asyncio.to_thread(path.read_text, self.encoding)
            record = json.loads(raw)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Session read error for %s: %s", path.name, e)
            return None

        if not is_valid_record(record):
            logger.warning("Ignoring malformed session file %s", path.name)
            return None
        if is_expired(record):
            await self.destroy(session_id)
            return None
        return record["data"]

    async def set(
        self, session_id: str, data: dict[str, Any], max_age_ms: int | None = None
    ) -> StoreResult:
        path = self._path(session_id)
        if path is None:
            logger.warning("Refusing to save session with an unusable id")
            return StoreResult.failure(SAVE_FAILED)
        try:
            await self._ensure_started()
            payload = json.dumps(make_record(data, max_age_ms), indent=2)
            await asyncio.to_thread(self._write, path, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Session write error for %s: %s", path.name, e)
            return StoreResult.failure(SAVE_FAILED)
        return StoreResult.success()

    def _write(self, path: Path, payload: str) -> None:
        tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
        try:
            tmp.write_text(payload, self.encoding)
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    async def destroy(self, session_id: str) -> StoreResult:
        path = self._path(session_id)
        if path is None:
            return StoreResult.success()
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.warning("Session destroy error for %s: %s", path.name, e)
            return StoreResult.failure("failed to destroy session")
        return StoreResult.success()

    async def touch(self, session_id: str, max_age_ms: int) -> StoreResult:
        data = await self.get(session_id)
        if data is None:
            return StoreResult.success()
        return await self.set(session_id, data, max_age_ms)

    def _session_files(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return [
            p
            for p in self.directory.iterdir()
            if p.name.endswith(self.extension) and not p.name.startswith(".")
        ]

    async def length(self) -> int:
        try:
            return len(await asyncio.to_thread(self._session_files))
        except OSError as e:
            logger.warning("Session count error: %s", e)
            return 0

    async def clear(self) -> StoreResult:
        try:
            files = await asyncio.to_thread(self._session_files)
            for path in files:
                await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.warning("Session clear error: %s", e)
            return StoreResult.failure("failed to clear sessions")
        return StoreResult.success()

    def _sweep_sync(self) -> int:
        now = now_ms()
        removed = 0
        for path in self._session_files():
            try:
                record = json.loads(path.read_text(self.encoding))
                if is_valid_record(record) and is_expired(record, now):
                    path.unlink(missing_ok=True)
                    removed += 1
            except (OSError, ValueError):
                # Unreadable or half-written files are left for the next pass.
                continue
        return removed

    async def sweep(self) -> int:
        """Delete expired session files. Returns the number removed."""
        try:
            return await asyncio.to_thread(self._sweep_sync)
        except OSError as e:
            logger.warning("Session cleanup error: %s", e)
            return 0

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
            try:
                removed = await self.sweep()
            except Exception:
                logger.exception("Session file sweep failed")
            else:
                if removed:
                    logger.debug("Swept %d expired session files", removed)
            await asyncio.sleep(self.cleanup_interval)

    async def close(self) -> None:
        """Stop the background sweep. Session files are kept."""
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and not sweeper.get_loop().is_closed():
            sweeper.cancel()
            if sweeper.get_loop() is asyncio.get_running_loop():
                try:
                    await sweeper
                except asyncio.CancelledError:
                    pass
