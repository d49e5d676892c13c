"""Utility modules."""

from routeswap.utils.locks import KeyedLocks, LockTimeoutError

__all__ = ["KeyedLocks", "LockTimeoutError"]
