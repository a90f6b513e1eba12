import json
import logging

import redis.asyncio as redis
from redis.exceptions import WatchError

from postfeed.config import settings

logger = logging.getLogger(__name__)

LIST_KEY = "posts:list"
LIST_GENERATION_KEY = "posts:gen:list"


def detail_key(post_id: str) -> str:
    return f"posts:detail:{post_id}"


def generation_key(post_id: str) -> str:
    return f"posts:gen:{post_id}"


class CacheManager:
    """
    Cache-aside manager backed by Redis for post reads.

    All public methods are safe to call even when Redis is unavailable:
    reads return None and writes are skipped.  Mutations never read through
    the cache; they always load the current document from the store.

    Every cached entry has a generation counter next to it.  Invalidation
    bumps the counter before deleting the entry, and readers only store a
    value if the counter still holds what they saw before loading from the
    store.  A read that raced a write therefore never puts its stale copy
    back.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def generation(self, gen_key: str) -> int | None:
        """Current value of *gen_key*, or None when it cannot be read."""
        if not self._redis:
            return None
        try:
            return int(await self._redis.get(gen_key) or 0)
        except Exception as exc:
            logger.debug("Cache generation error for key=%r: %s", gen_key, exc)
            return None

    async def set_if_generation(
        self,
        key: str,
        value: dict | list,
        gen_key: str,
        expected: int | None,
        ttl: int | None = None,
    ) -> bool:
        """
        Store *value* under *key* only while *gen_key* still equals
        *expected*.  WATCH makes the check and the write one transaction.
        Returns True when the value was written.
        """
        if not self._redis or expected is None:
            return False
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(gen_key)
                if int(await pipe.get(gen_key) or 0) != expected:
                    return False
                pipe.multi()
                pipe.set(key, json.dumps(value, default=str), ex=ttl)
                await pipe.execute()
            return True
        except WatchError:
            return False
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)
            return False

    async def bump(self, *gen_keys: str) -> None:
        if not self._redis or not gen_keys:
            return
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for gen_key in gen_keys:
                    pipe.incr(gen_key)
                await pipe.execute()
        except Exception as exc:
            logger.debug("Cache INCR error for keys=%r: %s", gen_keys, exc)

    async def delete(self, *keys: str) -> None:
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            logger.debug("Cache DELETE error for keys=%r: %s", keys, exc)

    # ------------------------------------------------------------------
    # Domain-level invalidation
    # ------------------------------------------------------------------

    async def invalidate_post(self, post_id: str | None = None) -> None:
        """
        Drop the feed list and, when *post_id* is given, that post's detail
        entry.  Generations are bumped first so in-flight reads that loaded
        the old document cannot write it back.
        """
        gen_keys = [LIST_GENERATION_KEY]
        keys = [LIST_KEY]
        if post_id is not None:
            gen_keys.append(generation_key(post_id))
            keys.append(detail_key(post_id))
        await self.bump(*gen_keys)
        await self.delete(*keys)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the metrics endpoint."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


cache = CacheManager()
