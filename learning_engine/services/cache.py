"""Tagged read-through cache for engine results.

Recommendation lists and risk assessments are expensive enough to memoize
but go stale the moment a learner's knowledge state changes.  Entries are
written with one or more TAGS (e.g. ``user:42:recommendations``) and the
tracker invalidates by tag after every update, so callers never need to
know the exact cache keys that depend on a learner.

Two complementary expiry mechanisms:

  1. TTL — every entry auto-expires.  The safety net if an invalidation
     is ever missed.
  2. Tag invalidation — immediate consistency for the common case.

THE TAG INDEX
-------------
Each tag maps to the set of cache keys written under it.  The index entry
carries its own TTL, extended to cover the longest-lived key it protects,
so the index never outlives its keys by more than one TTL and never
expires before them.

BEST EFFORT
-----------
The engine talks to the cache only through SafeCache.  Any backend failure
is logged and treated as a miss; writes and invalidations never fail the
operation that issued them.  SafeCache(None) is a valid, permanently-empty
cache.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from redis.exceptions import RedisError

from learning_engine.core.errors import CacheError
from learning_engine.core.metrics import CACHE_OPERATIONS
from learning_engine.db.redis import redis_pool

logger = logging.getLogger(__name__)

# Keys longer than this are hashed so Redis keys stay bounded.
_MAX_KEY_LENGTH = 200


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(
        self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()
    ) -> None:
        """Store a value with a TTL, indexed under each tag."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...

    async def invalidate_by_tags(self, tags: Iterable[str]) -> None:
        """Delete every entry written under any of the tags."""
        ...

    async def health_check(self) -> bool: ...


class InMemoryCacheService:
    """Process-local cache with TTL enforcement.

    The clock is injectable so tests can expire entries without sleeping.
    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expires_at)
        self._store: dict[str, tuple[str, float]] = {}
        # tag -> (keys, expires_at)
        self._tags: dict[str, tuple[set[str], float]] = {}

    async def get(self, key: str) -> str | None:
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= self._clock():
            del self._store[key]
            return None
        return value

    async def set(
        self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()
    ) -> None:
        self._sweep()
        expires_at = self._clock() + ttl_seconds
        self._store[key] = (value, expires_at)
        for tag in tags:
            keys, tag_expires = self._tags.get(tag, (set(), 0.0))
            if tag_expires <= self._clock():
                keys = set()
            keys.add(key)
            self._tags[tag] = (keys, max(tag_expires, expires_at))

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)
        self._drop_from_tags({key})

    async def invalidate_by_tags(self, tags: Iterable[str]) -> None:
        removed: set[str] = set()
        for tag in tags:
            keys, _ = self._tags.pop(tag, (set(), 0.0))
            removed |= keys
        for k in removed:
            self._store.pop(k, None)
        self._drop_from_tags(removed)

    def _sweep(self) -> None:
        """Drop expired entries and tags."""
        now = self._clock()
        expired = {k for k, (_, expires_at) in self._store.items() if expires_at <= now}
        for k in expired:
            del self._store[k]
        stale_tags = [t for t, (_, expires_at) in self._tags.items() if expires_at <= now]
        for tag in stale_tags:
            del self._tags[tag]
        self._drop_from_tags(expired)

    def _drop_from_tags(self, keys: set[str]) -> None:
        if not keys:
            return
        for tag in list(self._tags):
            tag_keys, _ = self._tags[tag]
            tag_keys -= keys
            if not tag_keys:
                del self._tags[tag]

    async def health_check(self) -> bool:
        await self.set("health_check", "ok", 1)
        result = await self.get("health_check")
        await self.delete("health_check")
        return result == "ok"


class RedisCacheService:
    """Redis-backed cache — shared across all engine processes."""

    # Key prefix prevents collisions with anything else in the same Redis.
    _PREFIX = "cache:"
    _TAG_PREFIX = "cache:tag:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, key: str) -> str:
        if len(key) > _MAX_KEY_LENGTH:
            key = hashlib.sha256(key.encode()).hexdigest()
        return f"{self._PREFIX}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._TAG_PREFIX}{tag}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except RedisError as exc:
            raise CacheError(f"get failed for {key!r}") from exc

    async def set(
        self, key: str, value: str, ttl_seconds: int, tags: Iterable[str] = ()
    ) -> None:
        full_key = self._key(key)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.setex(full_key, ttl_seconds, value)
                for tag in tags:
                    tag_key = self._tag_key(tag)
                    pipe.sadd(tag_key, full_key)
                    # NX gives a fresh set its TTL; GT only ever extends it.
                    pipe.expire(tag_key, ttl_seconds, nx=True)
                    pipe.expire(tag_key, ttl_seconds, gt=True)
                await pipe.execute()
        except RedisError as exc:
            raise CacheError(f"set failed for {key!r}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as exc:
            raise CacheError(f"delete failed for {key!r}") from exc

    async def invalidate_by_tags(self, tags: Iterable[str]) -> None:
        try:
            for tag in tags:
                tag_key = self._tag_key(tag)
                keys = await self._redis.smembers(tag_key)
                if keys:
                    await self._redis.delete(*keys)
                await self._redis.delete(tag_key)
        except RedisError as exc:
            raise CacheError("tag invalidation failed") from exc

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False


class SafeCache:
    """Best-effort facade the engine uses for every cache call."""

    def __init__(self, backend: CacheService | None) -> None:
        self._backend = backend

    async def get_json(self, key: str) -> Any | None:
        if self._backend is None:
            return None
        try:
            raw = await self._backend.get(key)
        except Exception:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Cache get failed key=%s; treating as miss", key, exc_info=True)
            return None
        if raw is None:
            CACHE_OPERATIONS.labels(operation="miss").inc()
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Discarding undecodable cache entry key=%s", key)
            return None
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return value

    async def set_json(
        self, key: str, value: Any, ttl_seconds: int, tags: Iterable[str] = ()
    ) -> None:
        if self._backend is None:
            return
        try:
            await self._backend.set(key, json.dumps(value), ttl_seconds, tuple(tags))
        except Exception:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Cache set failed key=%s", key, exc_info=True)

    async def invalidate_by_tags(self, tags: Iterable[str]) -> None:
        if self._backend is None:
            return
        tags = tuple(tags)
        try:
            await self._backend.invalidate_by_tags(tags)
        except Exception:
            CACHE_OPERATIONS.labels(operation="error").inc()
            logger.warning("Cache invalidation failed tags=%s", tags, exc_info=True)

    async def health_check(self) -> bool:
        if self._backend is None:
            return False
        try:
            return await self._backend.health_check()
        except Exception:
            logger.warning("Cache health check failed", exc_info=True)
            return False


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
