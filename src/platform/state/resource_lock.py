"""
Per-resource critical sections

Serializes read-check-mutate sequences on the same resource key while
letting different keys proceed in parallel. Waiters are served in arrival
order (anyio.Lock is fair) and give up after a bounded time.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict

import anyio

from src.platform.exception.exceptions import ResourceBusyError
from src.platform.logging.loguru_io import Logger
from src.service.expo.app.interface.i_resource_lock import IResourceLock


class ResourceLockRegistry(IResourceLock):
    def __init__(self, *, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, anyio.Lock] = {}

    @asynccontextmanager
    async def hold(self, *, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, anyio.Lock())
        try:
            with anyio.fail_after(self.timeout_seconds):
                await lock.acquire()
        except TimeoutError:
            Logger.base.warning(
                f'⏳ [LOCK] Timed out after {self.timeout_seconds}s waiting for {key}'
            )
            self._discard_if_idle(key, lock)
            raise ResourceBusyError(key=key, timeout=self.timeout_seconds) from None

        try:
            yield
        finally:
            lock.release()
            self._discard_if_idle(key, lock)

    def _discard_if_idle(self, key: str, lock: anyio.Lock) -> None:
        if not lock.locked() and lock.statistics().tasks_waiting == 0:
            if self._locks.get(key) is lock:
                del self._locks[key]

    def active_keys(self) -> int:
        return len(self._locks)
