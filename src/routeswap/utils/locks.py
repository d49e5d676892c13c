"""Keyed asyncio locks.

Provides one lock per key so that work for the same key (for example a
counterparty's key exchange) runs once while other keys proceed in parallel.
Each registry is owned by the object that creates it; nothing is global.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class KeyedLocks:
    """Registry of asyncio locks keyed by an arbitrary hashable.

    Example:
        locks = KeyedLocks()
        async with locks.hold(counterparty_id, operation="key_exchange"):
            # At most one task per counterparty runs here
            ...
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    async def get(self, key: Hashable) -> asyncio.Lock:
        """Get or create the lock for a key."""
        async with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()
            return self._locks[key]

    @asynccontextmanager
    async def hold(
        self,
        key: Hashable,
        timeout: Optional[float] = None,
        operation: str = "keyed_operation",
    ) -> AsyncIterator[None]:
        """Hold the lock for a key.

        Args:
            key: Lock key
            timeout: Maximum time to wait for the lock (None = wait forever)
            operation: Description for logging

        Raises:
            LockTimeoutError: If the lock is not acquired within timeout
        """
        lock = await self.get(key)

        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for {key} after {timeout}s: {operation}")
            raise LockTimeoutError(f"Could not acquire lock for {key} within {timeout}s")

        logger.debug(f"Lock acquired for {key}: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for {key}: {operation}")

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._locks.clear()
