"""
Degraded-availability cache.

Routes every call to the shared backend and, when it is unreachable,
serves the same call from a process-local MemoryCache.

The fallback path is best effort for a single process: locks and memoized
results taken there are invisible to other instances, so the cross-process
exactly-once guarantee does not hold while degraded.
"""

import logging
from typing import Any, Callable, Optional, TypeVar

from redis.exceptions import RedisError

from .base import CacheBackend
from .memory import MemoryCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FallbackCache(CacheBackend):

    def __init__(self, primary: CacheBackend, fallback: Optional[MemoryCache] = None):
        self.primary = primary
        self.fallback = fallback or MemoryCache()
        self.degraded = False

    def _call(self, op: str, primary_fn: Callable[[], T], fallback_fn: Callable[[], T]) -> T:
        try:
            result = primary_fn()
        except RedisError as e:
            if not self.degraded:
                logger.warning(f"Shared cache unavailable during {op}, using process-local cache: {e}")
            self.degraded = True
            return fallback_fn()
        if self.degraded:
            logger.info("Shared cache reachable again")
            self.degraded = False
        return result

    def get(self, key: str) -> Any:
        return self._call("get", lambda: self.primary.get(key), lambda: self.fallback.get(key))

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._call(
            "set",
            lambda: self.primary.set(key, value, ttl),
            lambda: self.fallback.set(key, value, ttl),
        )

    def delete(self, key: str) -> None:
        self._call("delete", lambda: self.primary.delete(key), lambda: self.fallback.delete(key))

    def acquire_lease(self, key: str, owner: str, ttl: float) -> bool:
        return self._call(
            "acquire_lease",
            lambda: self.primary.acquire_lease(key, owner, ttl),
            lambda: self.fallback.acquire_lease(key, owner, ttl),
        )

    def release_lease(self, key: str, owner: str) -> bool:
        return self._call(
            "release_lease",
            lambda: self.primary.release_lease(key, owner),
            lambda: self.fallback.release_lease(key, owner),
        )

    def delete_pattern(self, pattern: str) -> int:
        return self._call(
            "delete_pattern",
            lambda: self.primary.delete_pattern(pattern),
            lambda: self.fallback.delete_pattern(pattern),
        )
