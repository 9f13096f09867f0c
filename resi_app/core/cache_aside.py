import json
import logging
from typing import Any, Awaitable, Callable, Optional

from .cache import Cache
from .query_engine import ListParams
from .settings import settings

logger = logging.getLogger(__name__)


class CacheAside:
    """Read-through caching for one entity type.

    Keys:
      list   -> ``{entity}:list:{scope}:{request shape as sorted JSON}``
      detail -> ``{entity}:{id}``
      stats  -> ``{entity}:stats:{scope}``

    Invalidation is coarse: every mutation drops all cached list variants of
    the entity, plus the affected detail key and the entity's stats.
    """

    def __init__(self, cache: Cache, entity: str):
        self.cache = cache
        self.entity = entity

    def list_key(self, scope: Any, params: ListParams | dict) -> str:
        shape = params.cache_shape() if isinstance(params, ListParams) else params
        return f"{self.entity}:list:{scope}:{json.dumps(shape, sort_keys=True, default=str)}"

    def detail_key(self, entity_id: Any) -> str:
        return f"{self.entity}:{entity_id}"

    def stats_key(self, scope: Any) -> str:
        return f"{self.entity}:stats:{scope}"

    async def fetch(
        self,
        key: str,
        loader: Callable[[], Awaitable[dict]],
        ttl: Optional[int] = None,
    ) -> dict:
        cached = await self.cache.get_json(key)
        if cached is not None:
            logger.info("Cache hit for %s", key)
            return cached

        value = await loader()
        await self.cache.set_json(key, value, ttl or settings.LIST_CACHE_TTL)
        return value

    async def fetch_stats(self, scope: Any, loader: Callable[[], Awaitable[dict]]) -> dict:
        return await self.fetch(self.stats_key(scope), loader, settings.STATS_CACHE_TTL)

    async def invalidate(self, entity_id: Any = None):
        await self.cache.delete_pattern(f"{self.entity}:list:*")
        await self.cache.delete_pattern(f"{self.entity}:stats:*")
        if entity_id is not None:
            await self.cache.delete(self.detail_key(entity_id))
