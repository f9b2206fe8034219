"""Persistence collaborator for serialized games."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import structlog

LOGGER = structlog.get_logger(__name__)

KEY_PREFIX = "game:"


class GameStore(Protocol):
    """Key-value persistence the engine treats as an atomic black box."""

    async def load(self, code: str) -> Optional[str]:
        """Return the serialized game for ``code``, or ``None`` when absent."""

    async def save(self, code: str, data: str, ttl: int) -> None:
        """Persist ``data`` under ``code`` for ``ttl`` seconds."""


class InMemoryGameStore:
    """Process-local store with per-entry expiry, for tests and local play."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(code: str) -> str:
        return f"{KEY_PREFIX}{code}"

    async def load(self, code: str) -> Optional[str]:
        key = self._key(code)
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            data, expires_at = entry
            if expires_at is not None and self._clock() > expires_at:
                del self._entries[key]
                LOGGER.debug("store.expired", code=code)
                return None
            return data

    async def save(self, code: str, data: str, ttl: int) -> None:
        expires_at = self._clock() + ttl if ttl > 0 else None
        async with self._lock:
            self._entries[self._key(code)] = (data, expires_at)

    async def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        async with self._lock:
            expired = [
                key for key, (_, expires_at) in self._entries.items()
                if expires_at is not None and now > expires_at
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
