"""
Cache collaborator contract.

get / set / delete plus two atomic lease primitives. Lock state and memoized
results live only behind this interface; no transactions are assumed.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class CacheBackend(ABC):

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a JSON-compatible value, expiring after ttl seconds."""

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def acquire_lease(self, key: str, owner: str, ttl: float) -> bool:
        """
        Atomically: set key=owner with ttl if the key is absent or already
        held by owner. Returns False when a different owner holds it.
        """

    @abstractmethod
    def release_lease(self, key: str, owner: str) -> bool:
        """Atomically delete key only if owner still holds it."""

    @abstractmethod
    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the count removed."""
