"""
Per-account serialization of ingestion and sync.

Work on the same account runs one at a time; different accounts do not
block each other.
"""
import asyncio
import weakref


class AccountLockRegistry:
    """
    Hands out one asyncio.Lock per account id.

    Locks are held weakly: a lock that no holder or waiter references
    any more is dropped, so the registry does not grow with every
    account ever seen.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
