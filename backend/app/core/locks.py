import asyncio
from contextlib import asynccontextmanager
from typing import Hashable
from weakref import WeakValueDictionary

# One lock per user id. Entries disappear once no coroutine holds or waits
# on the lock, so the registry does not grow with the user base.
_locks: "WeakValueDictionary[Hashable, asyncio.Lock]" = WeakValueDictionary()


def _lock_for(key: Hashable) -> asyncio.Lock:
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


@asynccontextmanager
async def user_lock(user_id: int):
    """Serialize ledger mutations for one user within this process.

    Cross-process serialization comes from ``SELECT ... FOR UPDATE`` on the
    rows each operation touches.
    """
    lock = _lock_for(user_id)
    async with lock:
        yield
