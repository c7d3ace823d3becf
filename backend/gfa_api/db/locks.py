"""
Per-event write serialization.

Registration, cancellation, seat edits and account deletion for one event
take ``event_lock(event_id)`` before opening their transaction. Inside the
transaction the event row is also read ``FOR UPDATE`` and the counter is
moved by a guarded UPDATE, which is what keeps several worker processes
honest; the in-process lock keeps a single process from piling concurrent
writers onto the same row (and is all SQLite has).

Locks carry no data. Entries disappear once no coroutine holds a reference.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

_event_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(event_id: int) -> asyncio.Lock:
    lock = _event_locks.get(event_id)
    if lock is None:
        lock = asyncio.Lock()
        _event_locks[event_id] = lock
    return lock


@asynccontextmanager
async def event_lock(event_id: int) -> AsyncIterator[None]:
    lock = _lock_for(event_id)
    async with lock:
        yield


@asynccontextmanager
async def event_locks(event_ids: Iterable[int]) -> AsyncIterator[None]:
    """Hold several event locks, always acquired in ascending id order."""
    locks = [_lock_for(event_id) for event_id in sorted(set(event_ids))]
    acquired: list[asyncio.Lock] = []
    try:
        for lock in locks:
            await lock.acquire()
            acquired.append(lock)
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()
