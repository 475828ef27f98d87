"""
Cache Services

CacheBackend contract with process-local, Redis, and degraded-fallback
implementations, plus the shared key namespace.
"""

from .base import CacheBackend
from .memory import MemoryCache
from .redis_cache import RedisCache
from .fallback import FallbackCache
from .keys import CacheKeys

__all__ = [
    'CacheBackend',
    'MemoryCache',
    'RedisCache',
    'FallbackCache',
    'CacheKeys',
]
