import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple

PairKey = Tuple[str, str]


class PairLockRegistry:
    """
    One asyncio.Lock per (account_id, friend_id) pair.

    Locks are reference counted and dropped once nobody holds or waits on
    them, so the registry only ever contains pairs with in-flight work.
    """

    def __init__(self):
        self._locks: Dict[PairKey, asyncio.Lock] = {}
        self._holders: Dict[PairKey, int] = {}

    @asynccontextmanager
    async def hold(self, account_id: str, friend_id: str) -> AsyncIterator[None]:
        key = (account_id, friend_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Appends and deletions must share one registry per process
pair_locks = PairLockRegistry()
