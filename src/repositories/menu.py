"""
Menu Repositories

- MenuListCache: every menu item, ordered by name
- MenuDetailCache: one menu item with its ingredients and serving restaurants
"""

from src.core.config.constants import (
    CACHE_KEY_MENU_DETAIL,
    CACHE_KEY_MENU_LIST,
    COLLECTION_INGREDIENT,
    COLLECTION_MENU_ITEM,
    COLLECTION_MENU_ITEM_ON_RESTAURANT,
    COLLECTION_RESTAURANT,
)
from src.infrastructure.cache.codec import PayloadCodec
from src.repositories.base import CachedRepository, CollectionRepository
from src.repositories.dto import MenuItemDetail, MenuItemDTO


class MenuListCache(CollectionRepository):
    base_key = CACHE_KEY_MENU_LIST
    ttl_setting = "MENU_CACHE_TTL_MS"
    codec = PayloadCodec(MenuItemDTO, many=True)

    async def load(self, id: str | None = None) -> tuple[MenuItemDTO, ...]:
        rows = await self._store.find_many(COLLECTION_MENU_ITEM, order_by="name")
        return tuple(MenuItemDTO.from_row(row) for row in rows)


class MenuDetailCache(CachedRepository):
    """
    Per-item detail cache with refresh-ahead.

    Detail payloads join three collections, so ingredient, restaurant and
    link mutations all retire the whole ``menu:detail`` version.
    """

    base_key = CACHE_KEY_MENU_DETAIL
    ttl_setting = "MENU_DETAIL_CACHE_TTL_MS"
    codec = PayloadCodec(MenuItemDetail)
    refresh_ahead = True
    per_id = True

    async def get_by_id(self, id: str) -> MenuItemDetail | None:
        return await self._read(id)

    async def load(self, id: str | None = None) -> MenuItemDetail | None:
        if id is None:
            return None

        row = await self._store.find_unique(COLLECTION_MENU_ITEM, id)
        if row is None:
            return None

        ingredients = await self._store.find_many(
            COLLECTION_INGREDIENT, where={"menu_item_id": id}, order_by="created_at"
        )
        links = await self._store.find_many(
            COLLECTION_MENU_ITEM_ON_RESTAURANT, where={"menu_item_id": id}
        )

        restaurants = []
        restaurant_ids = [link["restaurant_id"] for link in links]
        if restaurant_ids:
            restaurants = await self._store.find_many(
                COLLECTION_RESTAURANT, where={"id": restaurant_ids}, order_by="name"
            )

        return MenuItemDetail.from_row(row, ingredients=ingredients, restaurants=restaurants)

    async def warm_all(self) -> int:
        """Warm the detail entry of every menu item. Returns the number warmed."""
        rows = await self._store.find_many(COLLECTION_MENU_ITEM, order_by="name")
        warmed = 0
        for row in rows:
            if await self.warm(str(row["id"])) is not None:
                warmed += 1
        return warmed
