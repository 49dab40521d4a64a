"""Concurrency control for signer accounts.

Two submissions from the same account race on the access key nonce. The
relay serializes them per account inside one process; separate processes
are not coordinated.

Account IDs come from callers, so a lock only lives in the registry while
some submission holds it or waits for it.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: account_id -> asyncio.Lock
_account_locks: dict[str, asyncio.Lock] = {}
# account_id -> number of holders plus waiters
_lock_users: dict[str, int] = {}


def get_account_lock(account_id: str) -> asyncio.Lock:
    """Get or create the lock for an account.

    Args:
        account_id: Signer account ID

    Returns:
        asyncio.Lock for the account
    """
    lock = _account_locks.get(account_id)
    if lock is None:
        lock = _account_locks.setdefault(account_id, asyncio.Lock())
    return lock


def _retain(account_id: str) -> asyncio.Lock:
    lock = get_account_lock(account_id)
    _lock_users[account_id] = _lock_users.get(account_id, 0) + 1
    return lock


def _discard(account_id: str) -> None:
    remaining = _lock_users.get(account_id, 0) - 1
    if remaining > 0:
        _lock_users[account_id] = remaining
        return
    _lock_users.pop(account_id, None)
    _account_locks.pop(account_id, None)


def active_account_locks() -> int:
    """Number of accounts with a held or awaited lock."""
    return len(_account_locks)


class AccountLock:
    """Context manager for exclusive submission rights on an account.

    Waits as long as it takes; callers bound the wait with their own
    deadline (asyncio.wait_for), which cancels the acquire cleanly.

    Example:
        async with AccountLock("bot.testnet"):
            state = await session.view_access_key(...)
            await session.broadcast(...)
    """

    def __init__(self, account_id: str, operation: str = "submission"):
        self.account_id = account_id
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "AccountLock":
        """Acquire the lock."""
        self._lock = _retain(self.account_id)
        try:
            await self._lock.acquire()
        except BaseException:
            _discard(self.account_id)
            logger.debug(f"Gave up waiting for {self.account_id}: {self.operation}")
            raise

        self._acquired = True
        logger.debug(f"Lock acquired for {self.account_id}: {self.operation}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock and drop it from the registry once unused."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            _discard(self.account_id)
            logger.debug(f"Lock released for {self.account_id}: {self.operation}")
        return False


def clear_account_locks() -> None:
    """Clear all account locks (for testing)."""
    _account_locks.clear()
    _lock_users.clear()
