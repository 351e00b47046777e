"""Key-value and sorted-set store interface."""
from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """
    Abstract blob, string-set, sorted-set and hash store.

    Values are strings. Sorted-set ranges are inclusive on both ends and
    accept -1 for "through the last member", the way Redis does.
    """

    @abstractmethod
    def get(self, key):
        """Return the blob at key, or None."""

    @abstractmethod
    def set(self, key, value, ttl=None, nx=False):
        """
        Write a blob, optionally expiring after ttl seconds.

        With nx the write only happens when the key is absent; returns True
        when the value was written.
        """

    @abstractmethod
    def exists(self, key):
        pass

    @abstractmethod
    def delete(self, *keys):
        """Delete keys; returns the number removed."""

    @abstractmethod
    def expire(self, key, seconds):
        pass

    @abstractmethod
    def sadd(self, key, *members):
        pass

    @abstractmethod
    def srem(self, key, *members):
        pass

    @abstractmethod
    def smembers(self, key):
        pass

    @abstractmethod
    def sismember(self, key, member):
        pass

    @abstractmethod
    def zadd(self, key, score, member):
        pass

    @abstractmethod
    def zrem(self, key, *members):
        pass

    @abstractmethod
    def zscore(self, key, member):
        """Score of member, or None when absent."""

    @abstractmethod
    def zcard(self, key):
        pass

    @abstractmethod
    def zrevrange(self, key, start, end, withscores=False):
        """Members from rank start to end, highest score first."""

    @abstractmethod
    def hsetnx(self, key, field, value):
        """Set a hash field only if absent; True when this call set it."""

    @abstractmethod
    def hset(self, key, mapping):
        pass

    @abstractmethod
    def hget(self, key, field):
        pass

    @abstractmethod
    def ping(self):
        pass

    def close(self):
        """Release connections held by the store."""
