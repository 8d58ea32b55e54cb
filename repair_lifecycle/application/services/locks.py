"""Per-key async locks serialising mutation of a job or technician.

Ordering rule: a job lock is always taken before any technician lock, and
technician locks are taken in sorted id order, so concurrent reassignments
cannot deadlock.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

from repair_lifecycle.domain.errors import LockTimeoutError


class KeyedLocks:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or awaits it."""

    def __init__(self, name: str, timeout: float | None = None):
        self._name = name
        self._timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), self._timeout)
            except asyncio.TimeoutError as exc:
                raise LockTimeoutError(f"{self._name} lock {key}", self._timeout or 0.0) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold_many(self, keys: Iterable[str | None]) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for key in sorted({k for k in keys if k}):
                await stack.enter_async_context(self.hold(key))
            yield


class LockRegistry:
    """Lock namespaces shared by the lifecycle service, engine and scheduler."""

    def __init__(self, timeout: float | None = 10.0):
        self.jobs = KeyedLocks("job", timeout)
        self.technicians = KeyedLocks("technician", timeout)

    def job(self, job_id: str):
        return self.jobs.hold(job_id)

    def technician_set(self, technician_ids: Iterable[str | None]):
        return self.technicians.hold_many(technician_ids)
