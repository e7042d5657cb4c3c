"""Per-timesheet locks around read-validate-write sequences.

Entry create/update/delete and submission read the week's entries, check
limits against them and then write. Holding the timesheet's lock for the
whole sequence keeps two concurrent requests from both passing the
aggregate hour check.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class TimesheetLocks:
    """Lazily created ``asyncio.Lock`` per key (timesheet id or employee/week).

    A lock is dropped once its last holder or waiter leaves, so only keys
    with requests in flight are kept. Locks only serialize requests handled
    by this process.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        elif lock.locked():
            logger.debug(f"Waiting for lock on {key}")
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
