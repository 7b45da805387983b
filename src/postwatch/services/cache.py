"""Redis-backed fast paths: view dedup, rate limiting, listing invalidation, leases.

Redis is optional. When ``REDIS_URL`` is unset, or once any Redis call
fails, the cache degrades to "always miss / always allow" for the lifetime of
the instance; callers never see a cache error.
"""

from __future__ import annotations

import logging
import math
import time
from functools import lru_cache

import redis

from postwatch.core.settings import settings

logger = logging.getLogger(__name__)

POST_LISTING_PREFIX = "posts:"


class Cache:
    """Thin best-effort wrapper around a Redis client."""

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._redis = client

    @property
    def available(self) -> bool:
        return self._redis is not None

    def _disable(self, operation: str, exc: Exception) -> None:
        logger.warning("Cache %s failed, continuing without Redis: %s", operation, exc)
        self._redis = None

    def exists(self, key: str) -> bool:
        """Return True if ``key`` is present; False on a miss or when degraded."""
        if self._redis is None:
            return False
        try:
            return bool(self._redis.exists(key))
        except redis.RedisError as exc:
            self._disable("exists", exc)
            return False

    def set(self, key: str, ttl_seconds: int) -> None:
        """Mark ``key`` as present for ``ttl_seconds``."""
        if self._redis is None or ttl_seconds <= 0:
            return
        try:
            self._redis.set(key, "1", ex=int(ttl_seconds))
        except redis.RedisError as exc:
            self._disable("set", exc)

    def increment(self, key: str, ttl_seconds: int) -> int | None:
        """Atomically increment a counter and (re)arm its TTL.

        Returns:
            The new value, or None when Redis is unavailable.
        """
        if self._redis is None:
            return None
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.incr(key)
            pipe.expire(key, int(ttl_seconds))
            count, _ = pipe.execute()
            return int(count)
        except redis.RedisError as exc:
            self._disable("increment", exc)
            return None

    def allow(
        self,
        kind: str,
        actor: str,
        *,
        limit: int,
        window_seconds: int = 60,
        now: float | None = None,
    ) -> bool:
        """Fixed-window rate limit check; allows everything when degraded."""
        if limit <= 0:
            return False
        window = max(1, int(window_seconds))
        slot = int(math.floor((now or time.time()) / window))
        count = self.increment(f"rl:{kind}:{actor}:{slot}", window)
        if count is None:
            return True
        return count <= limit

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; returns the number removed."""
        if self._redis is None:
            return 0
        try:
            keys = list(self._redis.scan_iter(match=f"{prefix}*", count=500))
            if not keys:
                return 0
            return int(self._redis.delete(*keys))
        except redis.RedisError as exc:
            self._disable("delete", exc)
            return 0

    def invalidate_post_listings(self) -> None:
        """Drop read-through caches of post listings after counters change."""
        removed = self.delete_prefix(POST_LISTING_PREFIX)
        if removed:
            logger.debug("Invalidated %d cached post listings", removed)

    # --- Work leases ----------------------------------------------------------------
    def acquire_lease(self, key: str, owner: str, ttl_seconds: int) -> bool:
        """Claim ``key`` for ``owner``; without Redis the claim always succeeds."""
        if self._redis is None:
            return True
        try:
            return bool(self._redis.set(key, owner, nx=True, ex=int(ttl_seconds)))
        except redis.RedisError as exc:
            self._disable("acquire_lease", exc)
            return True

    def renew_lease(self, key: str, owner: str, ttl_seconds: int) -> bool:
        """Extend a lease still held by ``owner``; False if someone else owns it."""
        if self._redis is None:
            return True
        try:
            current = self._redis.get(key)
            if current is None or _decode(current) != owner:
                return False
            return bool(self._redis.expire(key, int(ttl_seconds)))
        except redis.RedisError as exc:
            self._disable("renew_lease", exc)
            return True

    def release_lease(self, key: str, owner: str) -> None:
        if self._redis is None:
            return
        try:
            current = self._redis.get(key)
            if current is not None and _decode(current) == owner:
                self._redis.delete(key)
        except redis.RedisError as exc:
            self._disable("release_lease", exc)


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


@lru_cache(maxsize=1)
def get_cache() -> Cache:
    """Return the process-wide cache built from ``REDIS_URL``."""
    if not settings.redis_url:
        logger.info("REDIS_URL not configured; view dedup cache and rate limits disabled")
        return Cache(None)
    try:
        client = redis.from_url(settings.redis_url, socket_timeout=0.5)
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Could not configure Redis client: %s", exc)
        return Cache(None)
    return Cache(client)
