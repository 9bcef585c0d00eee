"""Restaurant list repository."""

from src.core.config.constants import CACHE_KEY_RESTAURANTS, COLLECTION_RESTAURANT
from src.infrastructure.cache.codec import PayloadCodec
from src.repositories.base import CollectionRepository
from src.repositories.dto import RestaurantDTO


class RestaurantListCache(CollectionRepository):
    base_key = CACHE_KEY_RESTAURANTS
    ttl_setting = "RESTAURANTS_CACHE_TTL_MS"
    codec = PayloadCodec(RestaurantDTO, many=True)

    async def load(self, id: str | None = None) -> tuple[RestaurantDTO, ...]:
        rows = await self._store.find_many(COLLECTION_RESTAURANT, order_by="name")
        return tuple(RestaurantDTO.from_row(row) for row in rows)
