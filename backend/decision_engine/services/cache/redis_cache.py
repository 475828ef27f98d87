"""
Redis cache adapter (redis-py, synchronous).

Values are JSON encoded. Leases run as Lua scripts so the
check-and-set / check-and-delete happens atomically on the server.
"""

import json
import logging
import math
from typing import Any, Optional

from redis import Redis

from .base import CacheBackend

logger = logging.getLogger(__name__)

# Set if absent or already ours, with TTL
ACQUIRE_SCRIPT = """
local current = redis.call("get", KEYS[1])
if current == false or current == ARGV[1] then
    redis.call("set", KEYS[1], ARGV[1], "EX", ARGV[2])
    return 1
end
return 0
"""

# Delete only if still ours
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def _seconds(ttl: Optional[float]) -> Optional[int]:
    if ttl is None:
        return None
    return max(1, int(math.ceil(ttl)))


class RedisCache(CacheBackend):
    """
    Shared cache backed by Redis.

    Pass an existing client (tests, connection pools) or a URL.
    RedisError propagates; wrap in FallbackCache for degraded availability.
    """

    def __init__(self, client: Optional[Redis] = None, url: Optional[str] = None):
        if client is None:
            if not url:
                raise ValueError("RedisCache requires a client or a url")
            client = Redis.from_url(url, decode_responses=True)
        self.client = client

    def get(self, key: str) -> Any:
        value = self.client.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self.client.set(key, json.dumps(value), ex=_seconds(ttl))

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def acquire_lease(self, key: str, owner: str, ttl: float) -> bool:
        result = self.client.eval(ACQUIRE_SCRIPT, 1, key, json.dumps(owner), _seconds(ttl))
        return bool(result)

    def release_lease(self, key: str, owner: str) -> bool:
        result = self.client.eval(RELEASE_SCRIPT, 1, key, json.dumps(owner))
        return bool(result)

    def delete_pattern(self, pattern: str) -> int:
        keys = list(self.client.scan_iter(match=pattern))
        if not keys:
            return 0
        return int(self.client.delete(*keys))

    def ping(self) -> bool:
        return bool(self.client.ping())
