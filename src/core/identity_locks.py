"""Per-identity async locks for serializing read-then-write sequences."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    """An asyncio lock plus the number of tasks holding or awaiting it."""

    lock: asyncio.Lock
    users: int = 0


class IdentityLockRegistry:
    """Registry of asyncio locks keyed by identity.

    Locks are created on first use and dropped once no task holds or waits
    on them, so the registry stays proportional to in-flight identities.
    Serialization is process local; cross-process races are left to the
    store's unique constraint.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}
        self._guard = Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _acquire_entry(self, key: str) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry(lock=asyncio.Lock())
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _release_entry(self, key: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._acquire_entry(key)
        try:
            async with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)


_identity_locks: IdentityLockRegistry | None = None


def get_identity_locks() -> IdentityLockRegistry:
    """Get or create the global identity lock registry."""
    global _identity_locks
    if _identity_locks is None:
        _identity_locks = IdentityLockRegistry()
        logger.debug("Identity lock registry created")
    return _identity_locks
