"""Redis-backed store using the redis-py asyncio client."""

from typing import Optional

import redis.asyncio as redis
import structlog

logger = structlog.get_logger(__name__)


class RedisStore:
    """Thin async wrapper over a Redis connection pool.

    Args:
        url: Redis connection URL.
        default_ttl: Expiry applied by :meth:`set` when no ttl is passed;
            ``None`` keeps keys forever.
    """

    def __init__(self, url: str, default_ttl: Optional[int] = None) -> None:
        self.url = url
        self.default_ttl = default_ttl
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("RedisStore is not connected")
        return self._client

    async def connect(self) -> None:
        """Open the pool and verify the server answers."""
        self._client = redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        await self._client.ping()
        logger.info("redis_connected", url=self.url.rsplit("@", 1)[-1])

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (redis.RedisError, RuntimeError) as exc:
            logger.warning("redis_ping_failed", error=str(exc))
            return False

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ttl = ttl if ttl is not None else self.default_ttl
        return bool(await self.client.set(key, value, ex=ttl))

    async def delete(self, *keys: str) -> int:
        return int(await self.client.delete(*keys))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self.client.expire(key, seconds))

    async def hget(self, key: str, field: str) -> Optional[str]:
        return await self.client.hget(key, field)

    async def hset(self, key: str, field: str, value: str) -> int:
        return int(await self.client.hset(key, field, value))

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(await self.client.hgetall(key))

    async def rpush(self, key: str, *values: str) -> int:
        return int(await self.client.rpush(key, *values))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        return list(await self.client.lrange(key, start, stop))

    async def ltrim(self, key: str, start: int, stop: int) -> bool:
        return bool(await self.client.ltrim(key, start, stop))
