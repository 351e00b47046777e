"""Redis implementation of the key-value store and the process-wide handle."""
import atexit
import logging
import threading

import redis

from imagecatalog.config import config
from imagecatalog.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

_STORE = None
_STORE_LOCK = threading.RLock()


class RedisStore(KeyValueStore):
    """Key-value store over a redis-py client with decoded responses."""

    def __init__(self, client=None, **options):
        """
        Initialize the store.

        Args:
            client: Existing redis.Redis instance (tests pass a fakeredis client)
            **options: Connection options used when no client is given
        """
        if client is None:
            options = options or config.redis_options
            client = redis.Redis(decode_responses=True, **options)
        self.client = client

    def get(self, key):
        return self.client.get(key)

    def set(self, key, value, ttl=None, nx=False):
        return bool(self.client.set(key, value, ex=ttl, nx=nx))

    def exists(self, key):
        return bool(self.client.exists(key))

    def delete(self, *keys):
        if not keys:
            return 0
        return self.client.delete(*keys)

    def expire(self, key, seconds):
        return self.client.expire(key, seconds)

    def sadd(self, key, *members):
        return self.client.sadd(key, *members)

    def srem(self, key, *members):
        return self.client.srem(key, *members)

    def smembers(self, key):
        return set(self.client.smembers(key))

    def sismember(self, key, member):
        return bool(self.client.sismember(key, member))

    def zadd(self, key, score, member):
        return self.client.zadd(key, {member: score})

    def zrem(self, key, *members):
        return self.client.zrem(key, *members)

    def zscore(self, key, member):
        return self.client.zscore(key, member)

    def zcard(self, key):
        return self.client.zcard(key)

    def zrevrange(self, key, start, end, withscores=False):
        return self.client.zrevrange(key, start, end, withscores=withscores)

    def hsetnx(self, key, field, value):
        return bool(self.client.hsetnx(key, field, value))

    def hset(self, key, mapping):
        return self.client.hset(key, mapping=mapping)

    def hget(self, key, field):
        return self.client.hget(key, field)

    def ping(self):
        return self.client.ping()

    def close(self):
        self.client.close()


def get_store():
    """Return the process-wide store, connecting on first use."""
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            options = config.redis_options
            logger.info("Connecting to Redis at %s:%s", options["host"], options["port"])
            _STORE = RedisStore(**options)
        return _STORE


def set_store(store):
    """Install a store as the process-wide handle."""
    global _STORE
    with _STORE_LOCK:
        _STORE = store


def reset_store():
    """Close and forget the process-wide store."""
    global _STORE
    with _STORE_LOCK:
        if _STORE is not None:
            try:
                _STORE.close()
            except redis.RedisError as e:
                logger.warning("Error closing Redis connection: %s", e)
        _STORE = None


atexit.register(reset_store)
