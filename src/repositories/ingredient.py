"""Ingredient list repository."""

from src.core.config.constants import CACHE_KEY_INGREDIENTS, COLLECTION_INGREDIENT
from src.infrastructure.cache.codec import PayloadCodec
from src.repositories.base import CollectionRepository
from src.repositories.dto import IngredientDTO


class IngredientListCache(CollectionRepository):
    """Every ingredient ordered by name, with refresh-ahead."""

    base_key = CACHE_KEY_INGREDIENTS
    ttl_setting = "INGREDIENTS_CACHE_TTL_MS"
    codec = PayloadCodec(IngredientDTO, many=True)
    refresh_ahead = True

    async def load(self, id: str | None = None) -> tuple[IngredientDTO, ...]:
        rows = await self._store.find_many(COLLECTION_INGREDIENT, order_by="name")
        return tuple(IngredientDTO.from_row(row) for row in rows)
