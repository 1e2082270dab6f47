import json
from typing import Any, Iterable, Optional


class CacheManager:
    """Best-effort JSON cache on top of a redis client.

    Every failure degrades to a cache miss; with no client configured the
    manager is a no-op, so callers never depend on the cache for correctness.
    """

    def __init__(self, redis_client=None):
        self.redis = redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if self.redis is None:
            return None
        try:
            data = self.redis.get(key)
            if data:
                return json.loads(data)
            return None
        except Exception:
            return None

    def set(self, key: str, value: Any, ttl: int = 300):
        """Set value in cache with TTL"""
        if self.redis is None:
            return False
        try:
            self.redis.setex(key, ttl, json.dumps(value))
            return True
        except Exception:
            return False

    def delete(self, key: str):
        """Delete key from cache"""
        if self.redis is None:
            return False
        try:
            self.redis.delete(key)
            return True
        except Exception:
            return False

    def delete_many(self, keys: Iterable[str]):
        """Delete several keys in one round trip"""
        keys = list(keys)
        if self.redis is None or not keys:
            return False
        try:
            self.redis.delete(*keys)
            return True
        except Exception:
            return False
