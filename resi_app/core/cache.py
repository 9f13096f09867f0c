import json
import logging
from typing import Any, Optional

from fastapi import Request
from redis.asyncio import Redis
from tenacity import retry, stop_after_attempt, wait_exponential

from .breaker import CircuitBreaker
from .settings import settings

logger = logging.getLogger(__name__)


class Cache:
    """Redis-backed key/value store used read-aside by every query path.

    Every failure is logged and swallowed: a failed read is a miss and a
    failed write or delete is a no-op, so a missing Redis only costs latency.
    """

    def __init__(self, url: str | None = None, breaker: CircuitBreaker | None = None):
        self.url = url or settings.REDIS_URL
        self.redis: Optional[Redis] = None
        self.breaker = breaker or CircuitBreaker(name="cache")

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def connect(self):
        logger.info("Connecting to Redis cache...")
        client = Redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        await client.ping()
        self.redis = client
        logger.info("Connected to Redis cache.")

    async def close(self):
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None

    async def _run(self, op: str, key: str, handler, default=None):
        if self.redis is None:
            return default
        try:
            return await self.breaker.call(handler)
        except Exception as e:
            logger.error("Redis %s failed for key %s: %s", op, key, e)
            return default

    async def get(self, key: str) -> Optional[str]:
        async def handler():
            return await self.redis.get(key)

        return await self._run("GET", key, handler)

    async def set(self, key: str, value: str, ttl: int = 300) -> None:
        if key is None or value is None:
            raise ValueError("Cache key and value cannot be None")

        async def handler():
            await self.redis.set(key, value, ex=ttl)
            logger.debug("Cache set for key: %s", key)

        await self._run("SET", key, handler)

    async def delete(self, key: str) -> bool:
        async def handler():
            return bool(await self.redis.delete(key))

        return await self._run("DELETE", key, handler, default=False)

    async def delete_pattern(self, pattern: str) -> int:
        async def handler():
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if not keys:
                return 0
            return await self.redis.delete(*keys)

        return await self._run("DELETE PATTERN", pattern, handler, default=0)

    async def get_json(self, key: str) -> Optional[Any]:
        data = await self.get(key)
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.error("Invalid JSON format in key: %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int = 300) -> None:
        await self.set(key, json.dumps(value), ttl)


def get_cache(request: Request) -> Cache:
    return request.app.state.cache
