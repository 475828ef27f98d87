"""
Process-local cache with TTL.

Thread-safe; values are stored as JSON text so callers never share mutable
objects. Leases are atomic within this process only: never rely on this
backend for exactly-once guarantees across multiple instances.
"""

import fnmatch
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .base import CacheBackend


class MemoryCache(CacheBackend):

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return raw

    def _expiry(self, ttl: Optional[float]) -> Optional[float]:
        return None if ttl is None else self._clock() + ttl

    def get(self, key: str) -> Any:
        with self._lock:
            raw = self._live(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        raw = json.dumps(value)
        with self._lock:
            self._entries[key] = (raw, self._expiry(ttl))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def acquire_lease(self, key: str, owner: str, ttl: float) -> bool:
        token = json.dumps(owner)
        with self._lock:
            current = self._live(key)
            if current is not None and current != token:
                return False
            self._entries[key] = (token, self._expiry(ttl))
            return True

    def release_lease(self, key: str, owner: str) -> bool:
        token = json.dumps(owner)
        with self._lock:
            if self._live(key) != token:
                return False
            del self._entries[key]
            return True

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [k for k in list(self._entries) if fnmatch.fnmatchcase(k, pattern)]
            for k in matched:
                del self._entries[k]
        return len(matched)

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        with self._lock:
            keys = list(self._entries)
            before = len(keys)
            for k in keys:
                self._live(k)
            return before - len(self._entries)
