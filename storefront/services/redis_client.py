"""Redis-backed store for per-viewer dismissed unread entries.

Shared across workers when REDIS_URL is set; otherwise dismissals live in
this process only.
"""

import logging
import threading

import redis

logger = logging.getLogger(__name__)

# Redis connection (lazy initialization)
_redis_client = None

DISMISSED_PREFIX = "dismissed:"
DISMISSED_TTL = 3600  # 1 hour - a session rarely outlives it without a refetch


def get_redis(redis_url=None):
    """Get or create Redis connection."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not redis_url:
        logger.warning("REDIS_URL not set - dismissed unread state is per-process")
        return None

    try:
        _redis_client = redis.from_url(redis_url, decode_responses=True)
        # Test connection
        _redis_client.ping()
        logger.info("Redis connected successfully")
        return _redis_client
    except redis.RedisError as e:
        logger.error(f"Redis connection failed: {e}")
        return None


def _dismissed_key(uid, scope):
    return f"{DISMISSED_PREFIX}{scope}:{uid}"


class DismissedStore:
    """Set of locally dismissed ids per (viewer, scope)."""

    def __init__(self, redis_client=None):
        self.redis = redis_client
        self._local = {}
        self._lock = threading.Lock()

    def members(self, uid, scope) -> set:
        if self.redis is not None:
            try:
                return set(self.redis.smembers(_dismissed_key(uid, scope)))
            except redis.RedisError as e:
                logger.error(f"Redis dismissed members error: {e}")
        with self._lock:
            return set(self._local.get((uid, scope), ()))

    def dismiss(self, uid, scope, *ids):
        if not ids:
            return
        if self.redis is not None:
            try:
                key = _dismissed_key(uid, scope)
                pipe = self.redis.pipeline()
                pipe.sadd(key, *ids)
                pipe.expire(key, DISMISSED_TTL)
                pipe.execute()
                return
            except redis.RedisError as e:
                logger.error(f"Redis dismiss error: {e}")
        with self._lock:
            self._local.setdefault((uid, scope), set()).update(ids)

    def reset(self, uid, scope):
        if self.redis is not None:
            try:
                self.redis.delete(_dismissed_key(uid, scope))
            except redis.RedisError as e:
                logger.error(f"Redis reset dismissed error: {e}")
        with self._lock:
            self._local.pop((uid, scope), None)
