"""
Redis cache helpers
Every call degrades to a no-op (or "allowed") when Redis is not configured.
"""
import json
from typing import Any, Optional, List, Dict
from . import core
import logging

logger = logging.getLogger(__name__)

class CacheManager:
    """Thin JSON cache over Redis with key prefixes"""

    def __init__(self):
        self.default_ttl = 3600  # 1 hour default TTL

    def _make_key(self, key: str, prefix: str = "") -> str:
        if prefix:
            return f"{prefix}:{key}"
        return key

    async def set(self, key: str, value: Any, ttl: int = None, prefix: str = "") -> bool:
        redis_client = await core.get_redis()
        if not redis_client:
            return False

        cache_key = self._make_key(key, prefix)
        try:
            await redis_client.setex(cache_key, ttl or self.default_ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"Cache set failed for key {cache_key}: {str(e)}")
            return False

    async def get(self, key: str, prefix: str = "") -> Optional[Any]:
        redis_client = await core.get_redis()
        if not redis_client:
            return None

        cache_key = self._make_key(key, prefix)
        try:
            value = await redis_client.get(cache_key)
            if value is None:
                return None
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding undecodable cache entry {cache_key}")
            return None
        except Exception as e:
            logger.error(f"Cache get failed for key {cache_key}: {str(e)}")
            return None

    async def delete(self, key: str, prefix: str = "") -> bool:
        redis_client = await core.get_redis()
        if not redis_client:
            return False

        cache_key = self._make_key(key, prefix)
        try:
            return bool(await redis_client.delete(cache_key))
        except Exception as e:
            logger.error(f"Cache delete failed for key {cache_key}: {str(e)}")
            return False

    async def increment(self, key: str, ttl: int, prefix: str = "") -> Optional[int]:
        """Increment a counter, setting its TTL on first use"""
        redis_client = await core.get_redis()
        if not redis_client:
            return None

        cache_key = self._make_key(key, prefix)
        try:
            value = await redis_client.incr(cache_key)
            if value == 1:
                await redis_client.expire(cache_key, ttl)
            return value
        except Exception as e:
            logger.error(f"Cache increment failed for key {cache_key}: {str(e)}")
            return None

# Global cache manager instance
cache = CacheManager()

# Friends cache functions
async def cache_user_friends(user_id: int, friends_list: List[Dict], ttl: int = 600):
    """Cache user friends list for 10 minutes"""
    return await cache.set(str(user_id), friends_list, ttl, "friends")

async def get_cached_user_friends(user_id: int) -> Optional[List[Dict]]:
    return await cache.get(str(user_id), "friends")

async def invalidate_friends_cache(user_id: int):
    await cache.delete(str(user_id), "friends")

# Rate limiting
async def check_rate_limit(user_id: int, action: str, limit: int, window: int) -> bool:
    """Fixed-window limit of ``limit`` calls per ``window`` seconds"""
    count = await cache.increment(f"{action}:{user_id}", window, "ratelimit")
    if count is None:
        return True
    return count <= limit
