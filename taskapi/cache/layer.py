import json
import time
from fnmatch import fnmatchcase
from typing import Any

from cachetools import TLRUCache
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from taskapi.core.config import Settings
from taskapi.core.logging import get_logger

logger = get_logger(__name__)


class RedisBackend:
    """
    Redis storage for the cache layer.

    The client is created on first use and dropped again after a connection
    failure or timeout so the next operation reconnects. Errors are never
    swallowed: a cache outage fails the request that hit it.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._redis: Redis | None = None

    async def _client(self) -> Redis:
        if self._redis is None:
            settings = self._settings
            redis = Redis.from_url(
                settings.redis_dsn,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=settings.redis_socket_timeout,
                socket_timeout=settings.redis_socket_timeout,
                socket_keepalive=True,
                health_check_interval=30,
            )
            try:
                await redis.ping()
            except RedisError:
                await redis.aclose()
                raise
            self._redis = redis
            logger.info("Redis connection established")
        return self._redis

    async def _reset(self):
        redis, self._redis = self._redis, None
        if redis is not None:
            await redis.aclose()

    async def _run(self, op: str, call):
        try:
            client = await self._client()
            return await call(client)
        except (RedisConnectionError, RedisTimeoutError):
            logger.warning("Redis connection lost, will reconnect", op=op)
            await self._reset()
            raise

    async def get(self, key: str) -> str | None:
        return await self._run("get", lambda r: r.get(key))

    async def set(self, key: str, value: str, ttl: int):
        await self._run("set", lambda r: r.set(key, value, ex=ttl))

    async def delete_matching(self, pattern: str) -> int:
        async def scan_and_delete(redis: Redis) -> int:
            deleted = 0
            cursor = 0
            while True:
                cursor, keys = await redis.scan(cursor, match=pattern, count=100)
                if keys:
                    deleted += await redis.delete(*keys)
                if cursor == 0:
                    return deleted

        return await self._run("delete_matching", scan_and_delete)

    async def ping(self) -> bool:
        return await self._run("ping", lambda r: r.ping())

    async def close(self):
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed")


class MemoryBackend:
    """Process-local backend with per-entry TTL, for development and tests."""

    def __init__(self, maxsize: int = 4096, timer=time.monotonic):
        # values are (raw, ttl) so each entry expires on its own schedule
        self._entries = TLRUCache(
            maxsize=maxsize, ttu=lambda _k, v, now: now + v[1], timer=timer
        )

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int):
        self._entries[key] = (value, ttl)

    async def delete_matching(self, pattern: str) -> int:
        self._entries.expire()
        keys = [key for key in list(self._entries.keys()) if fnmatchcase(key, pattern)]
        for key in keys:
            self._entries.pop(key, None)
        return len(keys)

    async def ping(self) -> bool:
        return True

    async def close(self):
        self._entries.clear()


class CacheLayer:
    """
    JSON cache-aside store in front of the database.

    Never a source of truth: every entry can be rebuilt from the database.
    Keys and patterns are namespaced with ``cache_namespace``.
    """

    def __init__(self, backend, namespace: str = "", default_ttl: int = 3600):
        self.backend = backend
        self.namespace = namespace
        self.default_ttl = default_ttl
        self.stats = {"hits": 0, "misses": 0, "invalidations": 0, "errors": 0}

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _serialize(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _deserialize(self, raw: str) -> Any:
        return json.loads(raw)

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.backend.get(self._key(key))
        except RedisError as e:
            self.stats["errors"] += 1
            logger.error("Cache GET error", key=key, error=str(e))
            raise

        if raw is None:
            self.stats["misses"] += 1
            logger.debug("Cache miss", key=key)
            return None

        self.stats["hits"] += 1
        logger.debug("Cache hit", key=key)
        return self._deserialize(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None):
        ttl = ttl or self.default_ttl
        try:
            await self.backend.set(self._key(key), self._serialize(value), ttl)
        except RedisError as e:
            self.stats["errors"] += 1
            logger.error("Cache SET error", key=key, error=str(e))
            raise
        logger.debug("Cache stored", key=key, ttl=ttl)

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a glob pattern such as ``tasks:42:*``."""
        try:
            deleted = await self.backend.delete_matching(self._key(pattern))
        except RedisError as e:
            self.stats["errors"] += 1
            logger.error("Cache pattern delete error", pattern=pattern, error=str(e))
            raise
        self.stats["invalidations"] += 1
        logger.info("Pattern delete completed", pattern=pattern, deleted=deleted)
        return deleted

    async def ping(self) -> bool:
        return await self.backend.ping()

    async def close(self):
        await self.backend.close()

    def get_stats(self) -> dict:
        lookups = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "hit_rate": self.stats["hits"] / lookups if lookups else 0,
        }


def create_cache_layer(settings: Settings) -> CacheLayer:
    if settings.cache_backend == "memory":
        backend = MemoryBackend(settings.memory_cache_maxsize)
    else:
        backend = RedisBackend(settings)
    return CacheLayer(
        backend,
        namespace=settings.cache_namespace,
        default_ttl=settings.task_list_ttl_seconds,
    )
