"""
Per-aggregate serialization.

Membership and comment mutations are read-modify-write on a project or
ticket. aggregate_locks.hold(kind, id) serializes them inside this process;
the store's unique constraints catch the cross-process case.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ticketdesk.core.exceptions import UnavailableException
from ticketdesk.db.guard import current_timeout

logger = logging.getLogger(__name__)


class AggregateLocks:
    """Registry of asyncio locks keyed by (aggregate kind, aggregate id)."""

    def __init__(self) -> None:
        # Entries disappear once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[
            tuple[str, uuid.UUID], asyncio.Lock
        ] = weakref.WeakValueDictionary()

    def _lock_for(self, kind: str, aggregate_id: uuid.UUID) -> asyncio.Lock:
        key = (kind, aggregate_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, kind: str, aggregate_id: uuid.UUID) -> bool:
        lock = self._locks.get((kind, aggregate_id))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, kind: str, aggregate_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._lock_for(kind, aggregate_id)
        timeout = current_timeout()
        acquire = asyncio.ensure_future(lock.acquire())
        try:
            await asyncio.wait_for(asyncio.shield(acquire), timeout=timeout)
        except asyncio.TimeoutError as exc:
            abandon(acquire, lock)
            logger.warning("Timed out waiting for %s %s lock", kind, aggregate_id)
            raise UnavailableException(
                f"{kind.capitalize()} is busy, retry the operation"
            ) from exc
        except asyncio.CancelledError:
            abandon(acquire, lock)
            raise
        try:
            yield
        finally:
            lock.release()


def abandon(acquire: asyncio.Future[bool], lock: asyncio.Lock) -> None:
    """
    Give up on a pending acquire. If the lock was granted just as the wait
    timed out, hand it straight back so no aggregate stays locked.
    """

    def release_if_granted(task: asyncio.Future[bool]) -> None:
        if not task.cancelled() and task.exception() is None:
            lock.release()

    acquire.cancel()
    acquire.add_done_callback(release_if_granted)


aggregate_locks = AggregateLocks()
